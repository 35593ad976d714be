"""
One-time OAuth bootstrap.

Mints the long-lived access and refresh tokens the gateway runs on. The flow
is run once by an operator, either in the browser through the server's /auth
and /oauth2callback routes or on the console with scripts/authorize.py:

    1. Redirect to Google's consent screen (offline access, forced consent so
       Google always returns a refresh token)
    2. Google redirects back with ?code=...
    3. Exchange the code for tokens
    4. The operator copies the printed GCLS_ACCESS_TOKEN / GCLS_REFRESH_TOKEN
       lines into credentials.env and restarts the server

Nothing here stores tokens. Each step builds its own Flow, so no PKCE verifier
is generated (it could not survive between the two HTTP requests).
"""

from dataclasses import dataclass

from google_auth_oauthlib.flow import Flow

from gcls_mcp.config import CLASSROOM_SCOPES, Settings

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"


@dataclass(frozen=True)
class MintedTokens:
    access_token: str
    refresh_token: str | None

    def as_env_lines(self) -> str:
        return (
            f"GCLS_ACCESS_TOKEN={self.access_token}\n"
            f"GCLS_REFRESH_TOKEN={self.refresh_token or ''}"
        )


def build_flow(settings: Settings) -> Flow:
    client_config = {
        "web": {
            "client_id": settings.client_id,
            "client_secret": settings.client_secret,
            "auth_uri": GOOGLE_AUTH_URI,
            "token_uri": settings.token_uri,
            "redirect_uris": [settings.redirect_uri],
        }
    }
    return Flow.from_client_config(
        client_config,
        scopes=list(CLASSROOM_SCOPES),
        redirect_uri=settings.redirect_uri,
        autogenerate_code_verifier=False,
    )


def authorization_url(settings: Settings) -> str:
    """URL of Google's consent screen for the Classroom scopes."""
    url, _state = build_flow(settings).authorization_url(
        access_type="offline",
        prompt="consent",
    )
    return url


def exchange_code(settings: Settings, code: str) -> MintedTokens:
    """Exchange an authorization code for access and refresh tokens."""
    flow = build_flow(settings)
    flow.fetch_token(code=code)
    credentials = flow.credentials
    return MintedTokens(
        access_token=credentials.token,
        refresh_token=credentials.refresh_token,
    )
