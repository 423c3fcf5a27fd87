#!/usr/bin/env python3
"""
Guild Loan Portal - Discord login gated on guild membership, loan form relayed to a webhook.
"""

import argparse
import json
import logging
import os
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep portal imports lazy (inside functions) so `--help` works without the server extras.
#


def check_config() -> int:
    """Print which settings are present (never their values). Non-zero exit if login cannot work."""
    from portal.auth.config import load_auth_config
    from portal.relay.config import load_relay_config

    auth = load_auth_config()
    relay = load_relay_config()
    summary = {
        "public_base_url": auth.public_base_url,
        "redirect_uri": auth.redirect_uri,
        "oauth_scope": auth.oauth_scope,
        "membership_check": auth.membership_check,
        "oauth_configured": auth.oauth_configured,
        "guild_configured": auth.gate_configured,
        "session_secret_set": bool(auth.session_secret),
        "session_ttl_seconds": auth.session_ttl_seconds,
        "cookie_secure": auth.cookie_secure,
        "webhook_configured": bool(relay.webhook_url),
        "amount_ceiling": str(relay.amount_ceiling) if relay.amount_ceiling is not None else None,
        "message_format": relay.message_format,
    }
    print(json.dumps(summary, indent=2, sort_keys=False))
    ok = auth.oauth_configured and auth.gate_configured and bool(auth.session_secret)
    return 0 if ok else 1


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Discord guild-gated loan request portal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the portal (reads CLIENT_ID, CLIENT_SECRET, SESSION_SECRET, RGWO_GUILD_ID, WEBHOOK_URL, ...)
  python main.py --serve

  # Show which settings are present before deploying
  python main.py --check-config
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Run the HTTP server")
    parser.add_argument(
        "--check-config", action="store_true", help="Print a config summary (no secrets) and exit non-zero if incomplete"
    )
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="Bind host (default: 0.0.0.0)")
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("PORT", "3000") or 3000), help="Listen port (default: $PORT or 3000)"
    )

    args = parser.parse_args()

    if args.check_config:
        sys.exit(check_config())

    if args.serve:
        from portal.api.server import run

        run(host=args.host, port=args.port)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
