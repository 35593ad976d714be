"""
Role-gated tool dispatch.

The dispatcher turns one process_message request into one Classroom
operation. The pipeline for every request:

    1. Unwrap the outer envelope (server selection, tool input present)
    2. Parse the tool input as a ToolInvocation JSON object
    3. Reject unknown tool names
    4. Build a fresh Classroom client
    5. Resolve the caller's role for the course in `arguments.courseId`
    6. Check the role against TOOL_ROLE_MAP
    7. Validate the arguments into the tool's typed call
    8. Run exactly one Classroom operation
    9. Wrap the result (or the failure) in a response envelope

Each step either passes or ends the request with a GatewayError; nothing is
sent to Classroom for a request that fails steps 1-7, apart from the
read-only teacher lookup in step 5.

`execute()` runs steps 3-8 and raises; it is shared by the HTTP endpoint and
the native MCP tools. `dispatch()` runs the whole pipeline and never raises.
"""

import json
import logging
import uuid
from typing import Any, Mapping, assert_never

from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from gcls_mcp.classroom import ClassroomClient, ClientFactory, describe_error
from gcls_mcp.errors import (
    AuthorizationError,
    ClientProtocolError,
    GatewayError,
    UpstreamError,
)
from gcls_mcp.roles import resolve_role
from gcls_mcp.tools import (
    CreateAssignment,
    CreateCourse,
    GetCourse,
    ListCourses,
    ListStudents,
    ToolCall,
    ToolInvocation,
    is_allowed,
    is_known_tool,
    parse_tool_call,
)

logger = logging.getLogger("gcls-mcp.dispatcher")


def success_envelope(result: Any) -> dict[str, Any]:
    return {
        "content": [{"type": "text", "text": json.dumps(result)}],
        "isError": False,
    }


def error_envelope(message: str) -> dict[str, Any]:
    return {"error": message, "isError": True}


def unwrap_envelope(body: Any, server_id: str) -> str:
    """
    Extract the raw tool input from a process_message request body.

    Expected shape:
        {"selected_servers": ["GCLS_MCP", ...], "client_details": {"input": "<json>"}}

    Raises:
        ClientProtocolError: If this server isn't selected or the input is missing
    """
    if not isinstance(body, dict):
        body = {}

    selected_servers = body.get("selected_servers")
    if not isinstance(selected_servers, list) or server_id not in selected_servers:
        raise ClientProtocolError(f"{server_id} not selected")

    client_details = body.get("client_details")
    raw_input = client_details.get("input") if isinstance(client_details, dict) else None
    if not raw_input:
        raise ClientProtocolError("Missing tool input")
    if not isinstance(raw_input, str):
        raise ClientProtocolError("Invalid tool call JSON")

    return raw_input


def parse_invocation(raw_input: str) -> ToolInvocation:
    try:
        return ToolInvocation.model_validate_json(raw_input)
    except ValidationError as e:
        raise ClientProtocolError("Invalid tool call JSON") from e


class ToolDispatcher:
    """
    Executes tool invocations against Classroom on behalf of the caller.

    Args:
        client_factory: Zero-argument callable returning a new ClassroomClient.
                        Called once per request.
        server_id: Identifier that must appear in `selected_servers`
        course_page_size: Page size used by list_courses
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        server_id: str = "GCLS_MCP",
        course_page_size: int = 50,
    ):
        self.client_factory = client_factory
        self.server_id = server_id
        self.course_page_size = course_page_size

    async def dispatch(self, body: Any) -> tuple[dict[str, Any], int]:
        """Run a process_message request body and return (envelope, status_code)."""
        request_id = str(uuid.uuid4())[:8]

        try:
            raw_input = unwrap_envelope(body, self.server_id)
            invocation = parse_invocation(raw_input)
            result = await self.execute(
                invocation.name, invocation.arguments, request_id=request_id
            )
        except GatewayError as e:
            logger.warning(
                "Tool call rejected",
                extra={
                    "audit_data": {
                        "request_id": request_id,
                        "status_code": e.status_code,
                        "decision": "rejected",
                        "reason": e.message,
                    }
                },
            )
            return error_envelope(e.message), e.status_code
        except Exception as e:
            logger.exception(
                "Tool call failed",
                extra={
                    "audit_data": {
                        "request_id": request_id,
                        "status_code": 500,
                        "decision": "failed",
                    }
                },
            )
            return error_envelope(str(e)), 500

        return success_envelope(result), 200

    async def execute(
        self,
        tool_name: str,
        arguments: Mapping[str, Any] | None = None,
        request_id: str | None = None,
    ) -> Any:
        """
        Authorize and run a single tool call.

        Returns:
            The JSON-serializable Classroom result

        Raises:
            ClientProtocolError: Unknown tool or invalid arguments
            AuthorizationError: The caller's role may not run the tool
            UpstreamError: The Classroom operation failed
        """
        request_id = request_id or str(uuid.uuid4())[:8]
        arguments = arguments or {}

        if not is_known_tool(tool_name):
            raise ClientProtocolError(f"Unknown tool: {tool_name}")

        client = self.client_factory()

        course_id = arguments.get("courseId")
        role = await resolve_role(client, str(course_id) if course_id else None)

        if not is_allowed(tool_name, role):
            logger.warning(
                "Tool call denied: role not permitted",
                extra={
                    "audit_data": {
                        "request_id": request_id,
                        "tool": tool_name,
                        "role": role.value,
                        "course_id": course_id,
                        "decision": "denied",
                        "reason": "role_not_permitted",
                    }
                },
            )
            raise AuthorizationError(role.value, tool_name)

        call = parse_tool_call(tool_name, arguments)

        logger.info(
            "Tool call authorized",
            extra={
                "audit_data": {
                    "request_id": request_id,
                    "tool": tool_name,
                    "role": role.value,
                    "course_id": course_id,
                    "decision": "allowed",
                }
            },
        )

        try:
            return await run_in_threadpool(self._run, client, call)
        except Exception as e:
            raise UpstreamError(describe_error(e)) from e

    def _run(self, client: ClassroomClient, call: ToolCall) -> Any:
        match call:
            case ListCourses():
                return client.list_courses(self.course_page_size)
            case GetCourse(course_id=course_id):
                return client.get_course(course_id)
            case CreateCourse():
                return client.create_course(call.request_body())
            case ListStudents(course_id=course_id):
                return client.list_students(course_id)
            case CreateAssignment(course_id=course_id):
                return client.create_course_work(course_id, call.request_body())
            case _:
                assert_never(call)
