"""Tests for the SSO callback, linking and connect services."""

from __future__ import annotations

from unittest.mock import AsyncMock, Mock, patch
from urllib.parse import parse_qs, parse_qsl, urlparse

import pytest
from sqlalchemy.orm import Session

from forum_sso.integrations.oauth.exceptions import (
    ConfigurationError,
    MissingTokenError,
    ProviderRejectedError,
    SessionExpiredError,
    UpstreamHttpError,
    UserNotFoundError,
)
from forum_sso.integrations.oauth.state import encode_state
from forum_sso.models.user import User
from forum_sso.services.providers import ensure_provider, get_client, save_provider_config
from forum_sso.services.sso_flow import (
    AFTER_CONNECTION,
    ConnectRedirect,
    LinkedResult,
    connect_data,
    default_sign_in_url,
    exchange_code,
    handle_callback,
    list_sign_in_methods,
    profile_connect_url,
)
from forum_sso.services.stash import SessionStash
from forum_sso.services.users import (
    get_identity_link,
    get_user_access_token,
    read_connection_token,
    save_identity_link,
)

PROFILE = {"UniqueID": "u-1", "Email": "ann@idp.example", "Name": "ann", "Provider": "acme"}


@pytest.fixture()
def oauth_client(db_session: Session, acme_provider):
    return get_client(db_session, "acme")


@pytest.fixture()
def stash(db_session: Session) -> SessionStash:
    return SessionStash({}, db_session)


def _profile_state(oauth_client, stash: SessionStash, user_id: int) -> str:
    url = profile_connect_url(oauth_client, stash, user_id)
    return parse_qs(urlparse(url).query)["state"][0]


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_binds_token_to_client(self, oauth_client) -> None:
        with patch.object(
            oauth_client, "request_access_token", AsyncMock(return_value={"access_token": "tok"})
        ):
            token = await exchange_code(oauth_client, "the-code")

        assert token == "tok"
        assert oauth_client.access_token() == "tok"

    @pytest.mark.asyncio
    async def test_missing_code_is_rejected(self, oauth_client) -> None:
        with pytest.raises(ProviderRejectedError):
            await exchange_code(oauth_client, None)

    @pytest.mark.asyncio
    async def test_error_in_body_uses_description(self, oauth_client) -> None:
        response = {"error": "invalid_grant", "error_description": "Code was already redeemed."}
        with patch.object(oauth_client, "request_access_token", AsyncMock(return_value=response)):
            with pytest.raises(ProviderRejectedError) as exc_info:
                await exchange_code(oauth_client, "the-code")

        assert exc_info.value.message == "Code was already redeemed."

    @pytest.mark.asyncio
    async def test_non_mapping_response_is_an_upstream_error(self, oauth_client) -> None:
        with patch.object(oauth_client, "request_access_token", AsyncMock(return_value="garbage")):
            with pytest.raises(UpstreamHttpError):
                await exchange_code(oauth_client, "the-code")


class TestHandleCallback:
    @pytest.mark.asyncio
    async def test_provider_error_stops_before_token_exchange(
        self, db_session: Session, oauth_client, stash: SessionStash
    ) -> None:
        with patch.object(oauth_client, "request_access_token", AsyncMock()) as token_mock:
            with pytest.raises(ProviderRejectedError) as exc_info:
                await handle_callback(
                    db_session, oauth_client, stash, code=None, error="access_denied"
                )

        assert exc_info.value.message == "access_denied"
        token_mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_token_skips_profile(
        self, db_session: Session, oauth_client, stash: SessionStash
    ) -> None:
        with patch.object(
            oauth_client, "request_access_token", AsyncMock(return_value={"token_type": "bearer"})
        ), patch.object(oauth_client, "get_profile", AsyncMock()) as profile_mock:
            with pytest.raises(MissingTokenError):
                await handle_callback(db_session, oauth_client, stash, code="the-code")

        profile_mock.assert_not_awaited()
        assert "acme" not in stash

    @pytest.mark.asyncio
    async def test_entry_without_state_stashes_and_redirects(
        self, db_session: Session, oauth_client, stash: SessionStash
    ) -> None:
        with patch.object(
            oauth_client, "request_access_token", AsyncMock(return_value={"access_token": "tok"})
        ), patch.object(oauth_client, "get_profile", AsyncMock(return_value=dict(PROFILE))):
            result = await handle_callback(db_session, oauth_client, stash, code="the-code")

        assert isinstance(result, ConnectRedirect)
        assert result.url == "/entry/connect/acme"
        assert result.target is None

        saved = stash.take("acme")
        assert saved["Profile"] == PROFILE
        assert saved["AccessToken"] != "tok"
        assert read_connection_token(saved) == "tok"

    @pytest.mark.asyncio
    async def test_entry_target_is_forwarded(
        self, db_session: Session, oauth_client, stash: SessionStash
    ) -> None:
        state = encode_state({"target": "/discussions/7"})
        with patch.object(
            oauth_client, "request_access_token", AsyncMock(return_value={"access_token": "tok"})
        ), patch.object(oauth_client, "get_profile", AsyncMock(return_value=dict(PROFILE))):
            result = await handle_callback(
                db_session, oauth_client, stash, code="the-code", state=state
            )

        assert result.target == "/discussions/7"
        assert result.url == "/entry/connect/acme?Target=%2Fdiscussions%2F7"

    @pytest.mark.asyncio
    async def test_profile_state_links_existing_user(
        self, db_session: Session, oauth_client, stash: SessionStash, forum_user: User
    ) -> None:
        notify = Mock()
        state = _profile_state(oauth_client, stash, forum_user.id)

        with patch.object(
            oauth_client, "request_access_token", AsyncMock(return_value={"access_token": "tok"})
        ), patch.object(oauth_client, "get_profile", AsyncMock(return_value=dict(PROFILE))):
            result = await handle_callback(
                db_session, oauth_client, stash, code="the-code", state=state, notify=notify
            )

        assert isinstance(result, LinkedResult)
        assert result.user_id == forum_user.id

        link = get_identity_link(db_session, "acme", "u-1")
        assert link is not None
        assert link.user_id == forum_user.id
        assert get_user_access_token(db_session, forum_user.id, "acme") == "tok"
        assert "acme" not in stash
        assert "acme:profile" not in stash
        notify.assert_called_once_with(AFTER_CONNECTION, {"provider": "acme", "user_id": forum_user.id})

    @pytest.mark.asyncio
    async def test_profile_state_with_unknown_user(
        self, db_session: Session, oauth_client, stash: SessionStash
    ) -> None:
        notify = Mock()
        state = _profile_state(oauth_client, stash, 999)

        with patch.object(
            oauth_client, "request_access_token", AsyncMock(return_value={"access_token": "tok"})
        ), patch.object(oauth_client, "get_profile", AsyncMock(return_value=dict(PROFILE))):
            with pytest.raises(UserNotFoundError):
                await handle_callback(
                    db_session, oauth_client, stash, code="the-code", state=state, notify=notify
                )

        notify.assert_not_called()
        assert get_identity_link(db_session, "acme", "u-1") is None

    @pytest.mark.asyncio
    async def test_profile_without_unique_id_cannot_be_linked(
        self, db_session: Session, oauth_client, stash: SessionStash, forum_user: User
    ) -> None:
        state = _profile_state(oauth_client, stash, forum_user.id)
        profile = {"Email": "ann@idp.example", "Provider": "acme"}

        with patch.object(
            oauth_client, "request_access_token", AsyncMock(return_value={"access_token": "tok"})
        ), patch.object(oauth_client, "get_profile", AsyncMock(return_value=profile)):
            with pytest.raises(ConfigurationError):
                await handle_callback(db_session, oauth_client, stash, code="the-code", state=state)

    @pytest.mark.asyncio
    async def test_profile_state_not_started_by_session_is_rejected(
        self, db_session: Session, oauth_client, stash: SessionStash, forum_user: User
    ) -> None:
        notify = Mock()
        state = encode_state({"r": "profile", "uid": str(forum_user.id)})

        with patch.object(oauth_client, "request_access_token", AsyncMock()) as token_mock:
            with pytest.raises(ProviderRejectedError):
                await handle_callback(
                    db_session, oauth_client, stash, code="the-code", state=state, notify=notify
                )

        token_mock.assert_not_awaited()
        notify.assert_not_called()
        assert get_identity_link(db_session, "acme", "u-1") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "tamper",
        [
            {"n": "guessed-nonce"},
            {"uid": "999"},
            {"n": None},
        ],
    )
    async def test_tampered_profile_state_is_rejected(
        self, db_session: Session, oauth_client, stash: SessionStash, forum_user: User, tamper
    ) -> None:
        issued = dict(parse_qsl(_profile_state(oauth_client, stash, forum_user.id)))
        issued.update(tamper)

        with patch.object(oauth_client, "request_access_token", AsyncMock()) as token_mock:
            with pytest.raises(ProviderRejectedError):
                await handle_callback(
                    db_session, oauth_client, stash, code="the-code", state=encode_state(issued)
                )

        token_mock.assert_not_awaited()
        assert "acme:profile" not in stash

    @pytest.mark.asyncio
    async def test_profile_state_is_single_use(
        self, db_session: Session, oauth_client, stash: SessionStash, forum_user: User
    ) -> None:
        state = _profile_state(oauth_client, stash, forum_user.id)

        with patch.object(
            oauth_client, "request_access_token", AsyncMock(return_value={"access_token": "tok"})
        ), patch.object(oauth_client, "get_profile", AsyncMock(return_value=dict(PROFILE))):
            await handle_callback(db_session, oauth_client, stash, code="the-code", state=state)

            with pytest.raises(ProviderRejectedError):
                await handle_callback(db_session, oauth_client, stash, code="again", state=state)

    @pytest.mark.asyncio
    async def test_new_attempt_clears_stale_stash(
        self, db_session: Session, oauth_client, stash: SessionStash
    ) -> None:
        stash.put("acme", {"Profile": {"UniqueID": "stale"}})

        with patch.object(
            oauth_client, "request_access_token", AsyncMock(return_value={})
        ):
            with pytest.raises(MissingTokenError):
                await handle_callback(db_session, oauth_client, stash, code="the-code")

        assert "acme" not in stash


class TestConnectData:
    def test_reads_stash_once(self, db_session: Session, stash: SessionStash) -> None:
        stash.put("acme", {"AccessToken": "encrypted", "Profile": dict(PROFILE)})

        data = connect_data(db_session, "acme", stash)

        assert data.profile == PROFILE
        assert data.user_id is None
        assert data.trusted is True
        assert data.verified is True
        assert data.attributes == {"acme": {"AccessToken": "encrypted", "Profile": PROFILE}}

        with pytest.raises(SessionExpiredError):
            connect_data(db_session, "acme", stash)

    def test_linked_identity_resolves_user(
        self, db_session: Session, stash: SessionStash, forum_user: User
    ) -> None:
        save_identity_link(db_session, forum_user.id, "acme", "u-1")
        stash.put("acme", {"AccessToken": "encrypted", "Profile": dict(PROFILE)})

        data = connect_data(db_session, "acme", stash)

        assert data.user_id == forum_user.id
        db_session.refresh(forum_user)
        assert forum_user.attributes["acme"]["Profile"] == PROFILE


class TestSignInUrls:
    def test_profile_connect_url_carries_user_and_nonce(
        self, oauth_client, stash: SessionStash
    ) -> None:
        state = dict(parse_qsl(_profile_state(oauth_client, stash, 42)))

        assert state["r"] == "profile"
        assert state["uid"] == "42"
        assert len(state["n"]) >= 32
        assert "acme:profile" in stash

    def test_each_profile_connect_url_gets_a_new_nonce(
        self, oauth_client, stash: SessionStash
    ) -> None:
        first = dict(parse_qsl(_profile_state(oauth_client, stash, 42)))
        second = dict(parse_qsl(_profile_state(oauth_client, stash, 42)))

        assert first["n"] != second["n"]

    def test_sign_in_methods_list_configured_providers(
        self, db_session: Session, acme_provider
    ) -> None:
        ensure_provider(db_session, "unconfigured")

        methods = list_sign_in_methods(db_session, "/welcome")

        assert [method["provider"] for method in methods] == ["acme"]
        assert methods[0]["name"] == "Acme ID"
        state = parse_qs(urlparse(methods[0]["sign_in_url"]).query)["state"][0]
        assert state == "target=%2Fwelcome"

    def test_default_sign_in_needs_default_provider(
        self, db_session: Session, acme_provider
    ) -> None:
        assert default_sign_in_url(db_session, "/") is None

        acme_provider.is_default = True
        db_session.commit()

        url = default_sign_in_url(db_session, "/")
        assert url.startswith("https://idp.example.com/oauth/authorize?")

    def test_sign_in_methods_leave_out_default_provider(
        self, db_session: Session, acme_provider, provider_settings
    ) -> None:
        save_provider_config(
            db_session, "other", provider_settings.model_copy(update={"name": "Other ID"})
        )
        acme_provider.is_default = True
        db_session.commit()

        methods = list_sign_in_methods(db_session, "/")

        assert [method["provider"] for method in methods] == ["other"]
        assert default_sign_in_url(db_session, "/") is not None
