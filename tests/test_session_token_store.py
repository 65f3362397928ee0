from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from session_tokens.models.session import (
    AuthenticateResult,
    AuthenticationProperties,
    SessionPrincipal,
)
from session_tokens.models.tokens import UserAccessTokenParameters
from session_tokens.services.token_store import (
    AnonymousSessionError,
    SessionUserAccessTokenStore,
    TokenExpirationFormatError,
)


class FakeAuthenticationSession:
    def __init__(
        self,
        *,
        items: dict[str, str] | None = None,
        authenticated: bool = True,
        with_properties: bool = True,
    ) -> None:
        self.principal = SessionPrincipal(subject="alice", claims={"role": "admin"})
        self.properties = (
            AuthenticationProperties(items=dict(items or {})) if with_properties else None
        )
        self.authenticated = authenticated
        self.authenticated_schemes: list[str | None] = []
        self.sign_ins: list[tuple[str | None, SessionPrincipal, dict[str, str]]] = []

    async def authenticate(self, scheme: str | None) -> AuthenticateResult:
        self.authenticated_schemes.append(scheme)
        if not self.authenticated:
            return AuthenticateResult.fail("not signed in")
        properties = (
            self.properties.model_copy(deep=True) if self.properties is not None else None
        )
        return AuthenticateResult.success(self.principal, properties)

    async def sign_in(
        self,
        scheme: str | None,
        principal: SessionPrincipal,
        properties: AuthenticationProperties,
    ) -> None:
        self.sign_ins.append((scheme, principal, dict(properties.items)))
        self.principal = principal
        self.properties = properties.model_copy(deep=True)


EXPIRES = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_store_then_get_round_trips_scoped_tokens() -> None:
    session = FakeAuthenticationSession()
    store = SessionUserAccessTokenStore()
    parameters = UserAccessTokenParameters(resource="api1", challenge_scheme="oidc")

    await store.store_token(session, None, "at1", EXPIRES, "rt1", parameters)
    token = await store.get_token(session, None, parameters)

    assert token is not None
    assert token.access_token == "at1"
    assert token.refresh_token == "rt1"
    assert token.expiration == EXPIRES


@pytest.mark.asyncio
async def test_store_writes_expected_bag_keys() -> None:
    session = FakeAuthenticationSession(items={"custom": "kept"})
    store = SessionUserAccessTokenStore()

    await store.store_token(
        session,
        None,
        "at1",
        EXPIRES,
        "rt1",
        UserAccessTokenParameters(resource="api1", challenge_scheme="oidc"),
    )

    assert session.properties is not None
    assert session.properties.items == {
        "custom": "kept",
        ".Token.access_token::api1": "at1",
        ".Token.expires_at::api1": "2025-01-01T00:00:00+00:00",
        ".Token.refresh_token::oidc": "rt1",
    }


@pytest.mark.asyncio
async def test_resource_isolation_example() -> None:
    session = FakeAuthenticationSession()
    store = SessionUserAccessTokenStore()

    await store.store_token(
        session, None, "at1", EXPIRES, "rt1", UserAccessTokenParameters(resource="api1")
    )

    first = await store.get_token(session, None, UserAccessTokenParameters(resource="api1"))
    other = await store.get_token(session, None, UserAccessTokenParameters(resource="api2"))

    assert first is not None
    assert (first.access_token, first.refresh_token, first.expiration) == (
        "at1",
        "rt1",
        EXPIRES,
    )
    assert other is not None
    assert other.access_token is None
    assert other.expiration is None
    # The refresh token is scoped by challenge scheme, not resource.
    assert other.refresh_token == "rt1"


@pytest.mark.asyncio
async def test_challenge_scheme_isolation() -> None:
    session = FakeAuthenticationSession()
    store = SessionUserAccessTokenStore()

    await store.store_token(
        session, None, "at", EXPIRES, "rt-a", UserAccessTokenParameters(challenge_scheme="a")
    )

    token = await store.get_token(
        session, None, UserAccessTokenParameters(challenge_scheme="b")
    )

    assert token is not None
    assert token.refresh_token is None
    assert token.access_token == "at"


@pytest.mark.asyncio
async def test_unscoped_entry_is_not_found_with_explicit_resource() -> None:
    session = FakeAuthenticationSession()
    store = SessionUserAccessTokenStore()

    await store.store_token(session, None, "plain", EXPIRES)

    unscoped = await store.get_token(session)
    scoped = await store.get_token(session, None, UserAccessTokenParameters(resource="api1"))

    assert unscoped is not None
    assert unscoped.access_token == "plain"
    assert unscoped.refresh_token is None
    assert scoped is not None
    assert scoped.access_token is None


@pytest.mark.asyncio
async def test_get_returns_none_when_authentication_fails(caplog) -> None:
    session = FakeAuthenticationSession(authenticated=False)
    store = SessionUserAccessTokenStore()

    with caplog.at_level(logging.INFO):
        token = await store.get_token(
            session, None, UserAccessTokenParameters(sign_in_scheme="cookie")
        )

    assert token is None
    assert "Cannot authenticate scheme: cookie" in caplog.text


@pytest.mark.asyncio
async def test_get_logs_default_scheme_label_without_parameters(caplog) -> None:
    session = FakeAuthenticationSession(authenticated=False)

    with caplog.at_level(logging.INFO):
        token = await SessionUserAccessTokenStore().get_token(session)

    assert token is None
    assert session.authenticated_schemes == [None]
    assert "Cannot authenticate scheme: default signin scheme" in caplog.text


@pytest.mark.asyncio
async def test_get_returns_none_without_properties() -> None:
    session = FakeAuthenticationSession(with_properties=False)

    assert await SessionUserAccessTokenStore().get_token(session) is None


@pytest.mark.asyncio
async def test_get_returns_none_without_token_entries() -> None:
    session = FakeAuthenticationSession(items={"returnUrl": "/home"})

    assert await SessionUserAccessTokenStore().get_token(session) is None


@pytest.mark.asyncio
async def test_get_rejects_malformed_expiration() -> None:
    session = FakeAuthenticationSession(
        items={".Token.access_token": "at", ".Token.expires_at": "tomorrow-ish"}
    )

    with pytest.raises(TokenExpirationFormatError):
        await SessionUserAccessTokenStore().get_token(session)


@pytest.mark.asyncio
async def test_get_reads_seven_digit_fraction_timestamps() -> None:
    session = FakeAuthenticationSession(
        items={
            ".Token.access_token": "at",
            ".Token.expires_at": "2025-01-01T00:00:00.0000000+00:00",
        }
    )

    token = await SessionUserAccessTokenStore().get_token(session)

    assert token is not None
    assert token.expiration == EXPIRES


@pytest.mark.asyncio
async def test_store_rejects_anonymous_session() -> None:
    session = FakeAuthenticationSession(
        items={".Token.access_token": "old"}, authenticated=False
    )

    with pytest.raises(AnonymousSessionError):
        await SessionUserAccessTokenStore().store_token(session, None, "new", EXPIRES)

    assert session.sign_ins == []
    assert session.properties is not None
    assert session.properties.items == {".Token.access_token": "old"}


@pytest.mark.asyncio
async def test_refresh_token_is_updated_in_place() -> None:
    session = FakeAuthenticationSession(
        items={".Token.refresh_token": "rt-old", "other": "x"}
    )

    await SessionUserAccessTokenStore().store_token(session, None, "at", EXPIRES, "rt-new")

    assert session.properties is not None
    keys = list(session.properties.items)
    assert keys.count(".Token.refresh_token") == 1
    assert keys.index(".Token.refresh_token") == 0
    assert session.properties.items[".Token.refresh_token"] == "rt-new"


@pytest.mark.asyncio
async def test_refresh_token_is_inserted_when_absent() -> None:
    session = FakeAuthenticationSession(items={"other": "x"})

    await SessionUserAccessTokenStore().store_token(
        session, None, "at", EXPIRES, "rt", UserAccessTokenParameters(challenge_scheme="oidc")
    )

    assert session.properties is not None
    refresh_keys = [k for k in session.properties.items if k.startswith(".Token.refresh_token")]
    assert refresh_keys == [".Token.refresh_token::oidc"]


@pytest.mark.asyncio
async def test_store_without_refresh_token_keeps_existing_one() -> None:
    session = FakeAuthenticationSession(items={".Token.refresh_token": "rt"})

    await SessionUserAccessTokenStore().store_token(session, None, "at", EXPIRES)

    assert session.properties is not None
    assert session.properties.items[".Token.refresh_token"] == "rt"


@pytest.mark.asyncio
async def test_store_reissues_with_filtered_principal_and_scheme() -> None:
    session = FakeAuthenticationSession()

    async def drop_claims(principal: SessionPrincipal) -> SessionPrincipal:
        return principal.model_copy(update={"claims": {}})

    store = SessionUserAccessTokenStore(principal_filter=drop_claims)
    await store.store_token(
        session, None, "at", EXPIRES, parameters=UserAccessTokenParameters(sign_in_scheme="bff")
    )

    assert session.authenticated_schemes == ["bff"]
    scheme, principal, _ = session.sign_ins[-1]
    assert scheme == "bff"
    assert principal.subject == "alice"
    assert principal.claims == {}


@pytest.mark.asyncio
async def test_store_normalizes_naive_expiration_to_utc() -> None:
    session = FakeAuthenticationSession()
    store = SessionUserAccessTokenStore()
    naive = datetime(2030, 6, 1, 12, 30)

    await store.store_token(session, None, "at", naive)
    token = await store.get_token(session)

    assert token is not None
    assert token.expiration == naive.replace(tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_store_preserves_offset_instant() -> None:
    session = FakeAuthenticationSession()
    store = SessionUserAccessTokenStore()
    expires = datetime(2030, 1, 1, 9, 0, tzinfo=timezone(timedelta(hours=2)))

    await store.store_token(session, None, "at", expires)
    token = await store.get_token(session)

    assert token is not None
    assert token.expiration == expires


@pytest.mark.asyncio
async def test_store_starts_empty_bag_when_properties_missing() -> None:
    session = FakeAuthenticationSession(with_properties=False)

    await SessionUserAccessTokenStore().store_token(session, None, "at", EXPIRES)

    assert session.properties is not None
    assert session.properties.items[".Token.access_token"] == "at"


@pytest.mark.asyncio
async def test_clear_removes_only_matching_entries() -> None:
    session = FakeAuthenticationSession(
        items={
            ".Token.access_token::api1": "at1",
            ".Token.expires_at::api1": "2025-01-01T00:00:00+00:00",
            ".Token.refresh_token": "rt",
            ".Token.access_token::api2": "at2",
            "other": "x",
        }
    )

    await SessionUserAccessTokenStore().clear_token(
        session, None, UserAccessTokenParameters(resource="api1")
    )

    assert session.properties is not None
    assert session.properties.items == {".Token.access_token::api2": "at2", "other": "x"}
    assert len(session.sign_ins) == 1


@pytest.mark.asyncio
async def test_clear_is_quiet_for_anonymous_or_empty_sessions() -> None:
    anonymous = FakeAuthenticationSession(authenticated=False)
    empty = FakeAuthenticationSession(items={"other": "x"})
    store = SessionUserAccessTokenStore()

    await store.clear_token(anonymous)
    await store.clear_token(empty)

    assert anonymous.sign_ins == []
    assert empty.sign_ins == []
