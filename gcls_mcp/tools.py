"""
Tool definitions and role-based access mapping.

This module is the central registry for the gateway's tools:

    TOOL_ROLE_MAP = {
        "tool_name": {roles allowed to call it},
    }

Each tool also has a typed call model. The raw `arguments` object of a tool
invocation is validated into exactly one of these before anything is sent to
Classroom, so the dispatcher routes on a closed set of types instead of on a
free-form name string:

    list_courses       ListCourses
    get_course         GetCourse(courseId)
    create_course      CreateCourse(name, section, description)
    list_students      ListStudents(courseId)
    create_assignment  CreateAssignment(courseId, title, description, maxPoints)

Wire argument names are camelCase, as callers send them.
"""

from types import MappingProxyType
from typing import Any, ClassVar, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from gcls_mcp.errors import ClientProtocolError
from gcls_mcp.roles import Role

# Maps each tool name to the roles allowed to call it. Read-only for the
# lifetime of the process.
TOOL_ROLE_MAP: Mapping[str, frozenset[Role]] = MappingProxyType(
    {
        "list_courses": frozenset({Role.TEACHER, Role.STUDENT}),
        "get_course": frozenset({Role.TEACHER, Role.STUDENT}),
        "list_students": frozenset({Role.TEACHER}),
        "create_course": frozenset({Role.TEACHER}),
        "create_assignment": frozenset({Role.TEACHER}),
    }
)


def is_allowed(tool_name: str, role: Role) -> bool:
    """Return True if `role` may execute `tool_name`. Unknown tools are denied."""
    return role in TOOL_ROLE_MAP.get(tool_name, frozenset())


class ToolInvocation(BaseModel):
    """A tool call as sent in `client_details.input`."""

    name: str
    arguments: dict[str, Any] | None = None


class _ToolCall(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    tool_name: ClassVar[str]


class ListCourses(_ToolCall):
    tool_name: ClassVar[str] = "list_courses"


class GetCourse(_ToolCall):
    tool_name: ClassVar[str] = "get_course"

    course_id: str = Field(validation_alias="courseId", min_length=1)


class CreateCourse(_ToolCall):
    tool_name: ClassVar[str] = "create_course"

    name: str = Field(min_length=1)
    section: str | None = ""
    description: str | None = ""

    def request_body(self) -> dict[str, Any]:
        # New courses are created PROVISIONED so they are not visible to
        # students until the owner activates them in Classroom.
        return {
            "name": self.name,
            "section": self.section or "",
            "description": self.description or "",
            "ownerId": "me",
            "courseState": "PROVISIONED",
        }


class ListStudents(_ToolCall):
    tool_name: ClassVar[str] = "list_students"

    course_id: str = Field(validation_alias="courseId", min_length=1)


class CreateAssignment(_ToolCall):
    tool_name: ClassVar[str] = "create_assignment"

    course_id: str = Field(validation_alias="courseId", min_length=1)
    title: str = Field(min_length=1)
    description: str | None = ""
    # "points" is the older argument name and is still accepted.
    max_points: int | float | None = Field(
        default=100,
        validation_alias=AliasChoices("maxPoints", "points"),
    )

    @field_validator("max_points")
    @classmethod
    def _non_negative(cls, value):
        if value is not None and value < 0:
            raise ValueError("must be greater than or equal to 0")
        return value

    def request_body(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description or "",
            "workType": "ASSIGNMENT",
            "state": "PUBLISHED",
            "maxPoints": 100 if self.max_points is None else self.max_points,
        }


ToolCall = ListCourses | GetCourse | CreateCourse | ListStudents | CreateAssignment

TOOL_CALLS: Mapping[str, type[_ToolCall]] = MappingProxyType(
    {
        model.tool_name: model
        for model in (ListCourses, GetCourse, CreateCourse, ListStudents, CreateAssignment)
    }
)


def is_known_tool(tool_name: str) -> bool:
    return tool_name in TOOL_ROLE_MAP


def parse_tool_call(tool_name: str, arguments: Mapping[str, Any] | None) -> ToolCall:
    """
    Validate raw tool arguments into the tool's call model.

    Raises:
        ClientProtocolError: If the tool is unknown or a required argument is
                             missing or has the wrong type
    """
    model = TOOL_CALLS.get(tool_name)
    if model is None:
        raise ClientProtocolError(f"Unknown tool: {tool_name}")

    try:
        return model.model_validate(dict(arguments or {}))
    except ValidationError as e:
        raise ClientProtocolError(
            f"Invalid arguments for {tool_name}: {_describe_errors(e)}"
        ) from e


def _describe_errors(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "arguments"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)
