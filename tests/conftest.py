"""
Shared test fixtures for the gateway test suite.

Key fixtures:
- classroom: An in-memory FakeClassroomClient. The caller teaches "course-1"
  and is only a student in "course-2".
- dispatcher: A ToolDispatcher whose client factory returns `classroom`
- make_body: A factory for process_message request bodies
- gateway: An httpx.AsyncClient wired to the FastMCP ASGI app, with the
  server's dispatcher swapped for the fake-backed one

Testing approach:
- test_roles.py / test_tools.py: unit tests for role resolution and the
  access policy, no HTTP involved.
- test_dispatcher.py: the full dispatch pipeline against the fake client.
- test_server.py: real HTTP requests to the ASGI app (in-memory, no network).
"""

import asyncio
import json
from typing import Any

import httpx
import pytest

from gcls_mcp import server
from gcls_mcp.dispatcher import ToolDispatcher

TEACHER_COURSE = "course-1"
STUDENT_COURSE = "course-2"


class FakeClassroomClient:
    """
    Records every call and answers from in-memory data.

    get_teacher succeeds only for course ids in `teaches`. Setting
    `fail_with` makes every non-role operation raise that exception.
    """

    def __init__(
        self,
        teaches: set[str] | None = None,
        courses: list[dict[str, Any]] | None = None,
        students: dict[str, list[dict[str, Any]]] | None = None,
    ):
        self.teaches = teaches if teaches is not None else set()
        self.courses = courses or []
        self.students = students or {}
        self.fail_with: Exception | None = None
        self.teacher_lookup_error: Exception | None = None
        self.calls: list[tuple] = []

    @property
    def operations(self) -> list[tuple]:
        """Recorded calls other than the role lookup."""
        return [call for call in self.calls if call[0] != "get_teacher"]

    def _record(self, *call) -> None:
        self.calls.append(call)
        if call[0] != "get_teacher" and self.fail_with is not None:
            raise self.fail_with

    def get_teacher(self, course_id: str, user_id: str = "me") -> dict[str, Any]:
        self._record("get_teacher", course_id, user_id)
        if self.teacher_lookup_error is not None:
            raise self.teacher_lookup_error
        if course_id not in self.teaches:
            raise LookupError(f"Requested entity was not found: {course_id}")
        return {"courseId": course_id, "userId": "teacher-1"}

    def list_courses(self, page_size: int) -> list[dict[str, Any]]:
        self._record("list_courses", page_size)
        return list(self.courses)

    def get_course(self, course_id: str) -> dict[str, Any]:
        self._record("get_course", course_id)
        return {"id": course_id, "name": f"Course {course_id}"}

    def create_course(self, body: dict[str, Any]) -> dict[str, Any]:
        self._record("create_course", body)
        return {"id": "course-new", **body}

    def list_students(self, course_id: str) -> list[dict[str, Any]]:
        self._record("list_students", course_id)
        return list(self.students.get(course_id, []))

    def create_course_work(self, course_id: str, body: dict[str, Any]) -> dict[str, Any]:
        self._record("create_course_work", course_id, body)
        return {"id": "work-1", "courseId": course_id, **body}


@pytest.fixture
def classroom():
    return FakeClassroomClient(
        teaches={TEACHER_COURSE},
        courses=[
            {"id": TEACHER_COURSE, "name": "Physics"},
            {"id": STUDENT_COURSE, "name": "Chemistry"},
        ],
        students={
            TEACHER_COURSE: [
                {"userId": "s-1", "profile": {"name": {"fullName": "Ada Lovelace"}}},
                {"userId": "s-2", "profile": {"name": {"fullName": "Alan Turing"}}},
            ],
        },
    )


@pytest.fixture
def dispatcher(classroom):
    return ToolDispatcher(client_factory=lambda: classroom)


@pytest.fixture
def make_body():
    """
    Factory fixture for process_message request bodies.

    Usage in tests:
        body = make_body("list_students", {"courseId": "course-1"})
    """

    def _make_body(
        name: str,
        arguments: dict[str, Any] | None = None,
        servers: tuple[str, ...] = ("GCLS_MCP",),
    ) -> dict[str, Any]:
        invocation: dict[str, Any] = {"name": name}
        if arguments is not None:
            invocation["arguments"] = arguments
        return {
            "selected_servers": list(servers),
            "client_details": {"input": json.dumps(invocation)},
        }

    return _make_body


@pytest.fixture
async def gateway(monkeypatch, dispatcher):
    """
    httpx client for the FastMCP ASGI app with its lifespan running.

    The lifespan starts the Streamable HTTP session manager's task group,
    which the /mcp endpoint needs. The custom routes work either way.
    """
    monkeypatch.setattr(server, "dispatcher", dispatcher)
    app = server.mcp.http_app(transport="streamable-http")

    startup_complete = asyncio.Event()
    shutdown_triggered = asyncio.Event()

    async def receive():
        if not startup_complete.is_set():
            startup_complete.set()
            return {"type": "lifespan.startup"}
        await shutdown_triggered.wait()
        return {"type": "lifespan.shutdown"}

    async def send(message):
        pass

    scope = {"type": "lifespan", "asgi": {"version": "3.0"}}
    lifespan_task = asyncio.create_task(app(scope, receive, send))

    await startup_complete.wait()
    await asyncio.sleep(0.1)

    client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    )

    yield client

    await client.aclose()
    shutdown_triggered.set()
    await lifespan_task
