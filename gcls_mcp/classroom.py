"""
Google Classroom client.

A thin wrapper around the google-api-python-client Classroom v1 resource that
exposes only the operations the gateway needs. The dispatcher depends on the
ClassroomClient protocol, so tests can hand it a fake.

A new client is built for every request from the shared, frozen
ClassroomCredentials. google-auth may refresh the access token in memory on
that per-request Credentials object; the refreshed token is never written back.
"""

from functools import partial
from typing import Any, Callable, Protocol

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from gcls_mcp.config import ClassroomCredentials


class ClassroomClient(Protocol):
    """Operations the gateway performs against Classroom."""

    def list_courses(self, page_size: int) -> list[dict[str, Any]]: ...

    def get_course(self, course_id: str) -> dict[str, Any]: ...

    def create_course(self, body: dict[str, Any]) -> dict[str, Any]: ...

    def list_students(self, course_id: str) -> list[dict[str, Any]]: ...

    def create_course_work(self, course_id: str, body: dict[str, Any]) -> dict[str, Any]: ...

    def get_teacher(self, course_id: str, user_id: str = "me") -> dict[str, Any]: ...


ClientFactory = Callable[[], ClassroomClient]


class GoogleClassroomClient:
    """ClassroomClient backed by the Classroom v1 discovery resource."""

    def __init__(self, service):
        self._service = service

    def list_courses(self, page_size: int) -> list[dict[str, Any]]:
        response = self._service.courses().list(pageSize=page_size).execute()
        return response.get("courses", [])

    def get_course(self, course_id: str) -> dict[str, Any]:
        return self._service.courses().get(id=course_id).execute()

    def create_course(self, body: dict[str, Any]) -> dict[str, Any]:
        return self._service.courses().create(body=body).execute()

    def list_students(self, course_id: str) -> list[dict[str, Any]]:
        response = self._service.courses().students().list(courseId=course_id).execute()
        return response.get("students", [])

    def create_course_work(self, course_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return (
            self._service.courses()
            .courseWork()
            .create(courseId=course_id, body=body)
            .execute()
        )

    def get_teacher(self, course_id: str, user_id: str = "me") -> dict[str, Any]:
        return (
            self._service.courses()
            .teachers()
            .get(courseId=course_id, userId=user_id)
            .execute()
        )


def describe_error(error: Exception) -> str:
    """Message reported to the caller for a failed Classroom call."""
    if isinstance(error, HttpError):
        return error.reason or str(error)
    return str(error)


def build_classroom_client(credentials: ClassroomCredentials) -> GoogleClassroomClient:
    """
    Build a Classroom client from the shared credentials.

    Uses the discovery document bundled with google-api-python-client, so
    building a client does not hit the network.
    """
    google_credentials = Credentials(
        token=credentials.access_token or None,
        refresh_token=credentials.refresh_token or None,
        token_uri=credentials.token_uri,
        client_id=credentials.client_id or None,
        client_secret=credentials.client_secret or None,
        scopes=list(credentials.scopes),
    )
    service = build(
        "classroom",
        "v1",
        credentials=google_credentials,
        cache_discovery=False,
        static_discovery=True,
    )
    return GoogleClassroomClient(service)


def classroom_client_factory(credentials: ClassroomCredentials) -> ClientFactory:
    """Return a zero-argument factory producing a fresh client per call."""
    return partial(build_classroom_client, credentials)
