#!/usr/bin/env python3
"""Mock Discord API + webhook sink for local development.

    DISCORD_API_BASE=http://localhost:19080/api WEBHOOK_URL=http://localhost:19080/webhook

The authorize step is not mocked; hit /auth/discord/callback?code=anything directly.
Set MOCK_MEMBER=0 to simulate a user outside the guild.
"""

import json
import os
import sys

from flask import Flask, jsonify, request

app = Flask(__name__)

GUILD_ID = os.getenv("RGWO_GUILD_ID", "100000000000000001")
IS_MEMBER = os.getenv("MOCK_MEMBER", "1") != "0"
USER = {"id": "200000000000000002", "username": "mockuser", "avatar": None, "discriminator": "0"}


@app.route("/api/oauth2/token", methods=["POST"])
def token():
    if not request.form.get("code"):
        return jsonify({"error": "invalid_grant"}), 400
    return jsonify({"access_token": "mock-access-token", "token_type": "Bearer", "expires_in": 604800})


@app.route("/api/users/@me", methods=["GET"])
def me():
    return jsonify(USER)


@app.route("/api/users/@me/guilds", methods=["GET"])
def guilds():
    return jsonify([{"id": GUILD_ID, "name": "Mock Guild"}] if IS_MEMBER else [])


@app.route("/api/guilds/<guild_id>/members/<user_id>", methods=["GET"])
def member(guild_id, user_id):
    if guild_id != GUILD_ID:
        return jsonify({"message": "Unknown Guild", "code": 10004}), 404
    if not IS_MEMBER or user_id != USER["id"]:
        return jsonify({"message": "Unknown Member", "code": 10007}), 404
    return jsonify({"user": USER, "roles": []})


@app.route("/webhook", methods=["POST"])
def webhook():
    """Print whatever the portal relays."""
    print(json.dumps(request.get_json(silent=True), indent=2), file=sys.stderr)
    return "", 204


@app.route("/healthz")
def health():
    """Health check endpoint."""
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    print("Mock Discord starting on http://0.0.0.0:19080", file=sys.stderr)
    app.run(host="0.0.0.0", port=19080, debug=False)
