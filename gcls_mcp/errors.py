"""
Gateway error taxonomy.

Every failure the dispatcher reports to a caller is one of these. Each carries
the message returned in the `{"error": ..., "isError": true}` envelope and the
HTTP status code it maps to:

    ClientProtocolError  400  malformed envelope, bad JSON, unknown tool, bad arguments
    AuthorizationError   403  role not permitted to run the tool
    UpstreamError        500  the Classroom API call failed

Anything that isn't a GatewayError is treated as a 500 by the dispatcher.
"""


class GatewayError(Exception):
    """
    Base class for failures surfaced to the caller.

    Attributes:
        message: Error text placed in the response envelope
        status_code: HTTP status code for the response
    """

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ClientProtocolError(GatewayError):
    """The request or tool invocation is malformed."""

    status_code = 400


class AuthorizationError(GatewayError):
    """The caller's role is not allowed to execute the requested tool."""

    status_code = 403

    def __init__(self, role: str, tool: str):
        self.role = role
        self.tool = tool
        super().__init__(f"Access denied: {role} cannot execute {tool}")


class UpstreamError(GatewayError):
    """A Classroom API operation failed."""

    status_code = 500
