"""MCP tool: downloadRunCsv — stream a report run's CSV export to local disk."""

from functools import partial
from pathlib import Path

from mode_mcp.mcp_server.errors import ToolArgumentError
from mode_mcp.mcp_server.mode_client import ModeClient, encode_segment
from mode_mcp.mcp_server.registry import ToolRegistry
from mode_mcp.mcp_server.schemas import require_argument, run_input_schema


def default_csv_path(output_dir: str, report_token: str, run_id: str) -> str:
    return f"{output_dir.rstrip('/')}/{report_token}-{run_id}.csv"


async def _mode_download_run_csv(
    client: ModeClient,
    reportToken: str | None = None,
    runId: str | None = None,
    outPath: str | None = None,
) -> dict:
    """
    Download ``reports/{reportToken}/runs/{runId}.csv`` to ``outPath``.

    Relative paths resolve against the working directory; parent directories are
    created and an existing file is overwritten. Returns the path as given and
    the number of bytes written.
    """
    token = require_argument(reportToken, "reportToken")
    run_id = require_argument(runId, "runId")
    if outPath is not None and not isinstance(outPath, str):
        raise ToolArgumentError("outPath", "outPath must be a string")

    client.settings.require_credentials()

    if outPath and outPath.strip():
        rel = outPath
    else:
        rel = default_csv_path(client.settings.output_dir, str(token), str(run_id))
    dest = (Path.cwd() / rel).resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)

    written = await client.download(
        f"reports/{encode_segment(token)}/runs/{encode_segment(run_id)}.csv", dest
    )
    return {"savedTo": rel, "bytes": written}


def register_export_tools(registry: ToolRegistry, client: ModeClient) -> None:
    registry.register(
        name=client.settings.tool_name("downloadRunCsv"),
        fn=partial(_mode_download_run_csv, client),
        description=(
            "Download the CSV results of a report run to a local file "
            "(default: <output_dir>/<reportToken>-<runId>.csv)."
        ),
        input_schema=run_input_schema(
            {
                "outPath": {
                    "type": "string",
                    "description": "Destination path, relative to the server working directory.",
                }
            }
        ),
    )
