"""
CLI utility to run the one-time Google OAuth bootstrap from a terminal.

This is the console equivalent of visiting the server's /auth route. It prints
the consent URL, waits for the authorization code Google appends to the
redirect URI (?code=...), exchanges it and prints the lines to paste into
credentials.env.

Usage examples:

    # Uses GCLS_CLIENT_ID / GCLS_CLIENT_SECRET from the environment or .env
    python -m scripts.authorize

    # Explicit OAuth client and redirect URI
    python -m scripts.authorize --client-id <id> --client-secret <secret> \\
        --redirect-uri http://localhost:5000/oauth2callback

    # Code already at hand (skip the prompt)
    python -m scripts.authorize --code 4/0AbC...

Once credentials.env holds the tokens, start the gateway and call a tool:

    curl -X POST http://localhost:5000/api/v1/mcp/process_message \\
      -H "Content-Type: application/json" \\
      -d '{"selected_servers":["GCLS_MCP"],"client_details":{"input":"{\\"name\\":\\"list_courses\\"}"}}'
"""

import argparse
import sys

from gcls_mcp import oauth
from gcls_mcp.config import settings


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Mint Google Classroom access and refresh tokens for the gateway.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Interactive:
    %(prog)s

  Non-interactive:
    %(prog)s --code 4/0AbC...
        """,
    )

    parser.add_argument(
        "--client-id",
        default=settings.client_id,
        help="OAuth client id (default: GCLS_CLIENT_ID)",
    )
    parser.add_argument(
        "--client-secret",
        default=settings.client_secret,
        help="OAuth client secret (default: GCLS_CLIENT_SECRET)",
    )
    parser.add_argument(
        "--redirect-uri",
        default=settings.redirect_uri,
        help="Redirect URI registered for the OAuth client (default: GCLS_REDIRECT_URI)",
    )
    parser.add_argument(
        "--code",
        help="Authorization code from the redirect; prompted for when omitted",
    )

    args = parser.parse_args()

    if not args.client_id or not args.client_secret:
        parser.error("an OAuth client id and secret are required")

    flow_settings = settings.model_copy(
        update={
            "client_id": args.client_id,
            "client_secret": args.client_secret,
            "redirect_uri": args.redirect_uri,
        }
    )

    code = args.code
    if not code:
        print("Visit this URL and approve access:", file=sys.stderr)
        print(f"  {oauth.authorization_url(flow_settings)}", file=sys.stderr)
        print(file=sys.stderr)
        code = input("Paste the 'code' parameter from the redirect URL: ").strip()

    if not code:
        print("No authorization code given, aborting.", file=sys.stderr)
        sys.exit(1)

    tokens = oauth.exchange_code(flow_settings, code)

    print("Add these lines to credentials.env:", file=sys.stderr)
    print(tokens.as_env_lines())


if __name__ == "__main__":
    main()
