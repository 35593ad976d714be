"""
Application configuration loaded from environment variables.

Uses pydantic-settings to define typed configuration that reads from the
process environment, a local .env file and the credentials.env file written
after the one-time OAuth bootstrap (see gcls_mcp/oauth.py):

    GCLS_CLIENT_ID=...
    GCLS_CLIENT_SECRET=...
    GCLS_ACCESS_TOKEN=...
    GCLS_REFRESH_TOKEN=...

The Google credentials are read once at startup and never written back.
Request handlers don't read them from the settings object directly: they get a
frozen ClassroomCredentials built by `settings.classroom_credentials()` and
pass it into client construction.
"""

from dataclasses import dataclass

from pydantic_settings import BaseSettings

# OAuth scopes requested during the bootstrap flow. The access and refresh
# tokens minted for these scopes are what every Classroom client is built from.
CLASSROOM_SCOPES: tuple[str, ...] = (
    "https://www.googleapis.com/auth/classroom.courses",
    "https://www.googleapis.com/auth/classroom.announcements",
    "https://www.googleapis.com/auth/classroom.coursework.students",
    "https://www.googleapis.com/auth/classroom.rosters",
)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class ClassroomCredentials:
    """
    Immutable snapshot of the OAuth credentials used to call Classroom.

    Shared by every request for the lifetime of the process. Each request
    builds its own google-auth Credentials object from it, so an in-memory
    token refresh in one request never leaks into another.
    """

    client_id: str
    client_secret: str
    access_token: str
    refresh_token: str
    token_uri: str = GOOGLE_TOKEN_URI
    scopes: tuple[str, ...] = CLASSROOM_SCOPES

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.refresh_token)


class Settings(BaseSettings):
    """
    Server configuration with environment variable bindings.

    Each field maps to an environment variable with the GCLS_ prefix.
    For example, `port` reads from GCLS_PORT, `refresh_token` reads
    from GCLS_REFRESH_TOKEN.
    """

    # --- Server settings ---

    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "info"

    # Identifier the caller must list in `selected_servers` for a
    # process_message request to be handled by this gateway.
    server_id: str = "GCLS_MCP"

    # --- Google OAuth client ---

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:5000/oauth2callback"
    token_uri: str = GOOGLE_TOKEN_URI

    # Long-lived tokens minted once via /auth -> /oauth2callback.
    access_token: str = ""
    refresh_token: str = ""

    # --- Classroom settings ---

    # Page size for list_courses. Only the first page is returned.
    course_page_size: int = 50

    model_config = {
        "env_prefix": "GCLS_",
        # Later files take precedence: credentials.env overrides .env.
        "env_file": (".env", "credentials.env"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def classroom_credentials(self) -> ClassroomCredentials:
        return ClassroomCredentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            token_uri=self.token_uri,
        )


# Singleton instance: import this from other modules.
settings = Settings()
