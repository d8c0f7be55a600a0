"""Tests for the provider management CLI."""

from __future__ import annotations

import json

import pytest
from sqlalchemy.orm import Session
from typer.testing import CliRunner

from forum_sso.cli import providers as providers_cli
from forum_sso.services.providers import get_provider, get_provider_config

runner = CliRunner()

CONFIGURE_ARGS = [
    "configure",
    "acme",
    "--client-id",
    "cid",
    "--client-secret",
    "secret",
    "--authorize-url",
    "https://idp.example.com/oauth/authorize",
    "--token-url",
    "https://idp.example.com/oauth/token",
]


@pytest.fixture(autouse=True)
def cli_session(monkeypatch: pytest.MonkeyPatch, db_session: Session) -> Session:
    monkeypatch.setattr(providers_cli, "SessionLocal", lambda: db_session)
    return db_session


def test_ensure_creates_provider(db_session: Session) -> None:
    result = runner.invoke(providers_cli.app, ["ensure", "acme"])

    assert result.exit_code == 0
    assert "Provider 'acme' is ready." in result.output
    assert get_provider(db_session, "acme") is not None


def test_configure_saves_settings(db_session: Session) -> None:
    result = runner.invoke(
        providers_cli.app,
        CONFIGURE_ARGS + ["--name", "Acme ID", "--default", "--profile-key-unique-id", "sub"],
    )

    assert result.exit_code == 0
    assert "Saved" in result.output
    config = get_provider_config(db_session, "acme")
    assert config.client_secret == "secret"
    assert config.is_default is True
    assert config.name == "Acme ID"
    assert config.profile_key_map["unique_id"] == "sub"


def test_configure_rejects_incomplete_url(db_session: Session) -> None:
    args = list(CONFIGURE_ARGS)
    args[args.index("https://idp.example.com/oauth/token")] = "idp.example.com/token"

    result = runner.invoke(providers_cli.app, args)

    assert result.exit_code == 1
    assert "Error: token_url" in result.output
    assert get_provider(db_session, "acme") is None


def test_show_hides_secret() -> None:
    runner.invoke(providers_cli.app, CONFIGURE_ARGS)

    result = runner.invoke(providers_cli.app, ["show", "acme"])

    assert result.exit_code == 0
    shown = json.loads(result.output)
    assert shown["client_id"] == "cid"
    assert "secret" not in result.output


def test_show_unknown_provider() -> None:
    result = runner.invoke(providers_cli.app, ["show", "missing"])

    assert result.exit_code == 1
    assert "not found" in result.output
