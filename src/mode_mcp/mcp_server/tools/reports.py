"""MCP tools: Mode reports — list, inspect, run, and poll runs."""

from functools import partial
from typing import Any

from mode_mcp.mcp_server.mode_client import ModeClient, encode_segment
from mode_mcp.mcp_server.registry import ToolRegistry
from mode_mcp.mcp_server.schemas import (
    report_input_schema,
    require_argument,
    run_input_schema,
    tool_input_schema,
)


async def _mode_list_reports(client: ModeClient) -> Any:
    return await client.request_json("GET", "reports")


async def _mode_get_report(client: ModeClient, reportToken: str | None = None) -> Any:
    token = require_argument(reportToken, "reportToken")
    return await client.request_json("GET", f"reports/{encode_segment(token)}")


async def _mode_run_report(
    client: ModeClient,
    reportToken: str | None = None,
    parameters: dict | None = None,
) -> Any:
    """Start a new run of a report, optionally with report parameters."""
    token = require_argument(reportToken, "reportToken")
    body = {"parameters": parameters} if parameters else {}
    return await client.request_json(
        "POST", f"reports/{encode_segment(token)}/runs", json_body=body
    )


async def _mode_get_run(
    client: ModeClient,
    reportToken: str | None = None,
    runId: str | None = None,
) -> Any:
    """Fetch one report run; poll its state before downloading results."""
    token = require_argument(reportToken, "reportToken")
    run_id = require_argument(runId, "runId")
    return await client.request_json(
        "GET", f"reports/{encode_segment(token)}/runs/{encode_segment(run_id)}"
    )


def register_report_tools(registry: ToolRegistry, client: ModeClient) -> None:
    name = client.settings.tool_name
    registry.register(
        name=name("listReports"),
        fn=partial(_mode_list_reports, client),
        description="List reports in the configured Mode workspace.",
        input_schema=tool_input_schema(),
    )
    registry.register(
        name=name("getReport"),
        fn=partial(_mode_get_report, client),
        description="Get a single Mode report by reportToken.",
        input_schema=report_input_schema(),
    )
    registry.register(
        name=name("runReport"),
        fn=partial(_mode_run_report, client),
        description="Start a new run of a Mode report, optionally with report parameters.",
        input_schema=report_input_schema(
            {
                "parameters": {
                    "type": "object",
                    "description": "Report parameter values keyed by parameter name.",
                }
            }
        ),
    )
    registry.register(
        name=name("getRun"),
        fn=partial(_mode_get_run, client),
        description="Get the state of a report run (pending, succeeded, failed).",
        input_schema=run_input_schema(),
    )
