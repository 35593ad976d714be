"""
Google Classroom tool gateway built on FastMCP v2.

This module creates and runs the server with:
- The process_message endpoint: a single generic tool-call endpoint taking a
  JSON-encoded tool invocation inside a request envelope
- The same five tools registered as native MCP tools on the Streamable HTTP
  transport (/mcp)
- Role-based access: the caller's role is looked up in Classroom per request
  and checked against TOOL_ROLE_MAP before any tool runs
- One-time OAuth bootstrap routes (/auth, /oauth2callback)
- Health and readiness HTTP endpoints
- Structured JSON logging for every dispatch decision

Request flow for POST /api/v1/mcp/process_message:

    {"selected_servers": ["GCLS_MCP"],
     "client_details": {"input": "{\"name\": \"list_students\", \"arguments\": {\"courseId\": \"123\"}}"}}

    1. Starlette decodes the body (invalid JSON is treated as an empty envelope)
    2. ToolDispatcher.dispatch() unwraps the envelope and parses the tool call
    3. resolve_role() asks Classroom whether the caller teaches course 123
    4. TOOL_ROLE_MAP decides whether that role may run list_students
    5. The Classroom operation runs and the result is wrapped as
       {"content": [{"type": "text", "text": "<json>"}], "isError": false}

    Failures come back as {"error": "<message>", "isError": true} with
    status 400, 403 or 500.

Running the server:
    python -m gcls_mcp.server

    This starts the server on http://0.0.0.0:5000 with:
    - Tool endpoint at /api/v1/mcp/process_message
    - MCP endpoint at /mcp (Streamable HTTP)
    - OAuth bootstrap at /auth
    - Health check at /health, readiness check at /ready
"""

import json
import logging
import sys
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from gcls_mcp import oauth
from gcls_mcp.classroom import classroom_client_factory
from gcls_mcp.config import settings
from gcls_mcp.dispatcher import ToolDispatcher
from gcls_mcp.errors import GatewayError

# ---------------------------------------------------------------------------
# Structured JSON Logging
# ---------------------------------------------------------------------------
# One JSON object per log line on stdout. Dispatch decisions attach their
# structured fields (request_id, tool, role, decision, ...) via
# logger.info("msg", extra={"audit_data": {...}}).


class JSONLogFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

        {"timestamp": "2026-10-19 10:30:00,120", "level": "INFO",
         "logger": "gcls-mcp.dispatcher", "message": "Tool call authorized",
         "request_id": "1f0c2a9b", "tool": "list_students", "role": "TEACHER"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "audit_data"):
            log_entry.update(record.audit_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(JSONLogFormatter())

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    handlers=[handler],
)
logger = logging.getLogger("gcls-mcp")


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------
# Credentials are snapshotted once here; every request builds its own
# Classroom client from the snapshot.
dispatcher = ToolDispatcher(
    client_factory=classroom_client_factory(settings.classroom_credentials()),
    server_id=settings.server_id,
    course_page_size=settings.course_page_size,
)


mcp = FastMCP(
    name="gcls-mcp",
    instructions=(
        "Google Classroom gateway. Lists and creates courses, lists course "
        "rosters and creates assignments. Roster listing and all create "
        "operations require the caller to be a teacher of the course."
    ),
)


# ---------------------------------------------------------------------------
# Tool endpoint
# ---------------------------------------------------------------------------


@mcp.custom_route("/api/v1/mcp/process_message", methods=["POST"])
async def process_message(request: Request) -> Response:
    """Run one tool invocation wrapped in a process_message envelope."""
    try:
        body = await request.json()
    except ValueError:
        body = {}

    envelope, status_code = await dispatcher.dispatch(body)
    return JSONResponse(envelope, status_code=status_code)


# ---------------------------------------------------------------------------
# Native MCP tools
# ---------------------------------------------------------------------------
# Same dispatcher, same role checks. Gateway errors become MCP tool errors
# (isError: true) with the same message the HTTP endpoint returns.


async def _run_tool(tool_name: str, arguments: dict[str, Any]) -> str:
    try:
        result = await dispatcher.execute(tool_name, arguments)
    except GatewayError as e:
        raise ToolError(e.message) from e
    return json.dumps(result)


@mcp.tool(description="List the caller's Google Classroom courses (first page).")
async def list_courses() -> str:
    return await _run_tool("list_courses", {})


@mcp.tool(description="Get a Google Classroom course by id.")
async def get_course(course_id: str) -> str:
    return await _run_tool("get_course", {"courseId": course_id})


@mcp.tool(description="Create a Google Classroom course in the PROVISIONED state. Teachers only.")
async def create_course(name: str, section: str = "", description: str = "") -> str:
    return await _run_tool(
        "create_course",
        {"name": name, "section": section, "description": description},
    )


@mcp.tool(description="List the students enrolled in a course. Teachers of the course only.")
async def list_students(course_id: str) -> str:
    return await _run_tool("list_students", {"courseId": course_id})


@mcp.tool(description="Create and publish an assignment in a course. Teachers of the course only.")
async def create_assignment(
    course_id: str,
    title: str,
    description: str = "",
    max_points: float = 100,
) -> str:
    return await _run_tool(
        "create_assignment",
        {
            "courseId": course_id,
            "title": title,
            "description": description,
            "maxPoints": max_points,
        },
    )


# ---------------------------------------------------------------------------
# OAuth bootstrap (one-time use)
# ---------------------------------------------------------------------------


@mcp.custom_route("/auth", methods=["GET"])
async def oauth_start(request: Request) -> Response:
    """Redirect the operator to Google's consent screen."""
    return RedirectResponse(oauth.authorization_url(settings))


@mcp.custom_route("/oauth2callback", methods=["GET"])
async def oauth_callback(request: Request) -> Response:
    """Exchange the authorization code and print the tokens for credentials.env."""
    code = request.query_params.get("code")
    if not code:
        return JSONResponse(
            {"error": "Missing authorization code", "isError": True},
            status_code=400,
        )

    tokens = await run_in_threadpool(oauth.exchange_code, settings, code)

    # Tokens go to stdout only, never through the JSON log handler.
    print(tokens.as_env_lines(), flush=True)
    logger.info("OAuth bootstrap complete, tokens printed to stdout")

    return HTMLResponse(
        "Authentication successful.<br/><br/>"
        "Copy the printed GCLS_ACCESS_TOKEN and GCLS_REFRESH_TOKEN "
        "into your credentials.env file and restart the server."
    )


# ---------------------------------------------------------------------------
# Health and Readiness Endpoints
# ---------------------------------------------------------------------------


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> Response:
    """Liveness probe: is the server process alive and responsive?"""
    return JSONResponse({"status": "healthy"})


@mcp.custom_route("/ready", methods=["GET"])
async def readiness_check(request: Request) -> Response:
    """Readiness probe: are Classroom credentials configured?"""
    if not settings.classroom_credentials().is_configured:
        return JSONResponse(
            {"status": "not_ready", "reason": "classroom credentials missing"},
            status_code=503,
        )

    return JSONResponse({"status": "ready"})


def main() -> None:
    logger.info(
        "Starting gateway on %s:%d (transport=streamable-http, server_id=%s)",
        settings.host,
        settings.port,
        settings.server_id,
    )
    mcp.run(
        transport="streamable-http",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
