"""
config.py — Runtime settings for the Mode MCP server.

Sources, lowest precedence first:
  1. dataclass defaults
  2. optional YAML file (``--config`` / MODE_MCP_CONFIG), keys are field names
  3. process environment, after ``.env.local`` and ``.env`` from the working
     directory have been merged in without overriding real variables
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import quote

import yaml
from dotenv import load_dotenv

from mode_mcp.mcp_server.errors import ConfigurationError

logger = logging.getLogger("mode_mcp.mcp_server.config")

DEFAULT_API_BASE_URL = "https://mode.com/api"
DEFAULT_OUTPUT_DIR = "public/analytics"
ENV_FILES = (".env.local", ".env")

_ENV_NAMES = {
    "workspace": "MODE_WORKSPACE",
    "token": "MODE_TOKEN",
    "secret": "MODE_SECRET",
    "api_base_url": "MODE_API_BASE_URL",
    "output_dir": "MODE_MCP_OUTPUT_DIR",
    "tool_namespace": "MODE_MCP_TOOL_NAMESPACE",
    "http_timeout_sec": "MODE_MCP_HTTP_TIMEOUT_SEC",
    "tool_timeout_sec": "MODE_MCP_TOOL_TIMEOUT_SEC",
}


def env_float(name: str, default: float, environ: Mapping[str, str] | None = None) -> float:
    value = (os.environ if environ is None else environ).get(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def env_bool(name: str, default: bool, environ: Mapping[str, str] | None = None) -> bool:
    value = (os.environ if environ is None else environ).get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_env_files(base_dir: str | Path | None = None) -> list[Path]:
    """Merge .env.local then .env into os.environ; existing variables win."""
    root = Path(base_dir) if base_dir is not None else Path.cwd()
    loaded = []
    for name in ENV_FILES:
        path = root / name
        if path.is_file():
            load_dotenv(path, override=False)
            loaded.append(path)
    return loaded


def load_yaml_config(config_path: str | Path) -> dict[str, Any]:
    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    known = {f.name for f in fields(ModeSettings)}
    unknown = sorted(set(config) - known)
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", config_path, unknown)
    return {k: v for k, v in config.items() if k in known}


@dataclass(frozen=True)
class ModeSettings:
    workspace: str = ""
    token: str = ""
    secret: str = ""
    api_base_url: str = DEFAULT_API_BASE_URL
    output_dir: str = DEFAULT_OUTPUT_DIR
    tool_namespace: str = ""
    http_timeout_sec: float = 30.0
    tool_timeout_sec: float = 0.0

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        defaults: Mapping[str, Any] | None = None,
    ) -> "ModeSettings":
        env = os.environ if environ is None else environ
        base = cls(**dict(defaults or {}))

        def _str(field_name: str) -> str:
            raw = env.get(_ENV_NAMES[field_name])
            if raw is None:
                return str(getattr(base, field_name) or "")
            return raw.strip()

        return cls(
            workspace=_str("workspace"),
            token=_str("token"),
            secret=_str("secret"),
            api_base_url=_str("api_base_url").rstrip("/") or DEFAULT_API_BASE_URL,
            output_dir=_str("output_dir") or DEFAULT_OUTPUT_DIR,
            tool_namespace=_str("tool_namespace"),
            http_timeout_sec=env_float(
                _ENV_NAMES["http_timeout_sec"], float(base.http_timeout_sec), env
            ),
            tool_timeout_sec=env_float(
                _ENV_NAMES["tool_timeout_sec"], float(base.tool_timeout_sec), env
            ),
        )

    @classmethod
    def load(
        cls,
        *,
        config_path: str | Path | None = None,
        base_dir: str | Path | None = None,
    ) -> "ModeSettings":
        """Load env files, the optional YAML file, then read the environment."""
        for path in load_env_files(base_dir):
            logger.info("Loaded environment overrides from %s", path)
        config_path = config_path or os.environ.get("MODE_MCP_CONFIG") or None
        defaults = load_yaml_config(config_path) if config_path else {}
        return cls.from_env(defaults=defaults)

    def missing_credentials(self) -> list[str]:
        return [
            env_name
            for field_name, env_name in (
                ("workspace", "MODE_WORKSPACE"),
                ("token", "MODE_TOKEN"),
                ("secret", "MODE_SECRET"),
            )
            if not getattr(self, field_name)
        ]

    def require_credentials(self) -> None:
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(missing)

    @property
    def workspace_url(self) -> str:
        return f"{self.api_base_url}/{quote(self.workspace, safe='')}/"

    def tool_name(self, name: str) -> str:
        return f"{self.tool_namespace}.{name}" if self.tool_namespace else name
