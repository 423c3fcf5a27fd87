from __future__ import annotations

from dataclasses import replace
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from portal.auth import discord


def test_build_authorize_url(auth_cfg) -> None:
    url = discord.build_authorize_url(auth_cfg)
    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == discord.DISCORD_AUTHORIZE_URL
    assert parse_qs(parsed.query) == {
        "client_id": ["test-client-id"],
        "redirect_uri": ["http://testserver/auth/discord/callback"],
        "response_type": ["code"],
        "scope": ["identify guilds"],
    }


def test_build_authorize_url_requires_client_id(auth_cfg) -> None:
    with pytest.raises(ValueError):
        discord.build_authorize_url(replace(auth_cfg, client_id=None))


def test_exchange_code_ok(auth_cfg, fake_discord) -> None:
    fake_discord.on("POST", "/oauth2/token", body={"access_token": "tok", "token_type": "Bearer"})
    res = discord.exchange_code(auth_cfg, "the-code")
    assert res.ok
    assert res.payload["access_token"] == "tok"
    _, _, kwargs = fake_discord.calls[0]
    assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"


def test_exchange_code_missing_token(auth_cfg, fake_discord) -> None:
    fake_discord.on("POST", "/oauth2/token", body={"token_type": "Bearer"})
    res = discord.exchange_code(auth_cfg, "the-code")
    assert not res.ok
    assert res.error.kind == "invalid_response"


@pytest.mark.parametrize(
    "status,kind",
    [
        (400, "bad_request"),
        (401, "unauthorized"),
        (403, "forbidden"),
        (404, "not_found"),
        (429, "bad_request"),
        (500, "upstream"),
        (503, "upstream"),
    ],
)
def test_status_classification(auth_cfg, fake_discord, status: int, kind: str) -> None:
    fake_discord.on("GET", "/users/@me", status=status, body={"message": "nope", "code": 50001})
    res = discord.fetch_profile(auth_cfg, "tok")
    assert not res.ok
    assert res.error.kind == kind
    assert res.error.status == status
    assert res.error.code == 50001
    assert res.error.message == "nope"


def test_oauth_error_body(auth_cfg, fake_discord) -> None:
    fake_discord.on("POST", "/oauth2/token", status=400, body={"error": "invalid_grant", "error_description": "bad code"})
    res = discord.exchange_code(auth_cfg, "stale")
    assert res.error.kind == "bad_request"
    assert res.error.code is None
    assert res.error.message == "bad code"


def test_transport_error(auth_cfg, fake_discord) -> None:
    fake_discord.on("GET", "/users/@me", exc=requests.Timeout("slow"))
    res = discord.fetch_profile(auth_cfg, "tok")
    assert res.error.kind == "transport"
    assert res.error.status is None


def test_non_json_success(auth_cfg, fake_discord) -> None:
    fake_discord.not_json("GET", "/users/@me")
    res = discord.fetch_profile(auth_cfg, "tok")
    assert res.error.kind == "invalid_response"


def test_profile_without_id_is_invalid(auth_cfg, fake_discord) -> None:
    fake_discord.on("GET", "/users/@me", body={"username": "ghost"})
    assert discord.fetch_profile(auth_cfg, "tok").error.kind == "invalid_response"


def test_guild_list_must_be_a_list(auth_cfg, fake_discord) -> None:
    fake_discord.on("GET", "/users/@me/guilds", body={"id": "1"})
    assert discord.fetch_user_guilds(auth_cfg, "tok").error.kind == "invalid_response"


def test_guild_member_uses_bot_credential(bot_auth_cfg, fake_discord) -> None:
    path = f"/guilds/{bot_auth_cfg.guild_id}/members/77"
    fake_discord.on("GET", path, body={"user": {"id": "77"}})
    res = discord.fetch_guild_member(bot_auth_cfg, "77")
    assert res.ok
    assert fake_discord.paths() == [path]
    assert fake_discord.calls[0][2]["headers"]["Authorization"] == "Bot test-bot-token"


def test_profile_fields() -> None:
    assert discord.profile_fields({"id": 5, "username": "u", "avatar": None, "discriminator": "0", "email": "x@y"}) == {
        "id": "5",
        "username": "u",
        "avatar": None,
        "discriminator": "0",
    }
