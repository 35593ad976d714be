"""
Caller role resolution.

The role is not a claim the caller sends; it is derived per request from
Classroom itself by asking "is the authenticated user a teacher of this
course?".

Two policy choices live here and nowhere else:

- **No course context means TEACHER.** Tools without a `courseId` argument
  (list_courses, create_course) run with the elevated role. This is a
  convenience default, NOT a security boundary: anything gated on it must
  rely on Classroom's own permission checks for the real enforcement.
- **Lookup failure means STUDENT.** Not-found, forbidden and transient
  network errors all downgrade the caller. A flaky upstream therefore shows up
  as a 403 rather than a 500; change `resolve_role` to surface the error if
  that trade-off stops being acceptable.
"""

import logging
from enum import StrEnum

from starlette.concurrency import run_in_threadpool

from gcls_mcp.classroom import ClassroomClient

logger = logging.getLogger("gcls-mcp.roles")


class Role(StrEnum):
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


# Role used when a tool call carries no course id. See module docstring.
DEFAULT_ROLE = Role.TEACHER


async def resolve_role(client: ClassroomClient, course_id: str | None) -> Role:
    """
    Determine the caller's role for a course.

    Args:
        client: Classroom client authenticated as the caller
        course_id: Course the tool call targets, or None

    Returns:
        TEACHER if there is no course id or the teacher record exists,
        STUDENT if the lookup fails for any reason
    """
    if not course_id:
        return DEFAULT_ROLE

    try:
        await run_in_threadpool(client.get_teacher, course_id, "me")
    except Exception as e:
        logger.warning(
            "Teacher lookup failed, downgrading to student",
            extra={
                "audit_data": {
                    "course_id": course_id,
                    "role": Role.STUDENT.value,
                    "reason": str(e),
                }
            },
        )
        return Role.STUDENT

    return Role.TEACHER
