"""Shared error types for the MCP server and the Mode client."""


class ModeMcpError(Exception):
    """Base error for all mode_mcp failures."""


class ConfigurationError(ModeMcpError):
    """Required configuration (credentials) is missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            f"Mode credentials not configured (missing: {', '.join(self.missing)}). "
            "Set MODE_WORKSPACE, MODE_TOKEN, MODE_SECRET."
        )


class ToolArgumentError(ModeMcpError):
    """A tool was called without a required argument, or with a bad one."""

    def __init__(self, argument: str, message: str | None = None) -> None:
        self.argument = argument
        super().__init__(message or f"{argument} is required")


class ModeApiError(ModeMcpError):
    """The Mode API answered with a non-2xx status."""

    def __init__(self, prefix: str, status_code: int, reason: str, body: str) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"{prefix} {status_code} {reason}: {body}")


class ToolTimeoutError(ModeMcpError):
    """A tool call exceeded the configured time limit."""

    def __init__(self, name: str, timeout_sec: float) -> None:
        self.name = name
        self.timeout_sec = timeout_sec
        super().__init__(f"Tool {name} timed out after {timeout_sec:g}s")


class ModeConnectionError(ModeMcpError):
    """The Mode API could not be reached."""

    def __init__(self, url: str, detail: str) -> None:
        self.url = url
        super().__init__(f"Mode API request to {url} failed: {detail}")
