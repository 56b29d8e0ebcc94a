import asyncio

import pytest
from pydantic import ValidationError

from fake_backend import PASSWORD, STUDENT, build_provider, signed_in, slowed

from tutorhub.identity.provider import IdentityStore
from tutorhub.schemas.auth import Identity, IdentityState, IdentityStatus
from tutorhub.utils.errors import AuthenticationRequired, ValidationFailed


# ======================
# IDENTITY STATE
# ======================

def test_signed_in_requires_an_identity():
    with pytest.raises(ValidationError):
        IdentityState(status=IdentityStatus.SIGNED_IN)


def test_signed_out_cannot_carry_an_identity():
    identity = Identity(uid="u1", email="x@example.com")
    with pytest.raises(ValidationError):
        IdentityState(status=IdentityStatus.SIGNED_OUT, identity=identity)


def test_resolving_has_no_identity():
    state = IdentityState.resolving()
    assert state.status == IdentityStatus.RESOLVING
    assert state.identity is None


# ======================
# IDENTITY STORE
# ======================

@pytest.mark.asyncio
async def test_store_starts_resolving_then_settles(provider):
    store = IdentityStore(provider)
    seen = []
    store.subscribe(lambda state: seen.append(state.status))

    assert store.state.status == IdentityStatus.RESOLVING
    await store.resolve(None)

    assert store.state.status == IdentityStatus.SIGNED_OUT
    assert seen == [IdentityStatus.SIGNED_OUT]


@pytest.mark.asyncio
async def test_sign_in_and_resolve_from_session_token(provider):
    store = IdentityStore(provider)
    identity = await store.sign_in(STUDENT, PASSWORD)

    assert identity.email == STUDENT
    assert identity.display_name == "Sam Student"
    assert store.state.status == IdentityStatus.SIGNED_IN

    # A second visitor object resolves the same cookie value.
    other = IdentityStore(provider)
    await other.resolve(store.session_token)
    assert other.identity.uid == identity.uid


@pytest.mark.asyncio
async def test_wrong_password_is_rejected(provider):
    store = IdentityStore(provider)
    await store.resolve(None)

    with pytest.raises(AuthenticationRequired):
        await store.sign_in(STUDENT, "not-the-password")
    assert store.state.status == IdentityStatus.SIGNED_OUT


@pytest.mark.asyncio
async def test_sign_out_revokes_the_session(provider):
    store = IdentityStore(provider)
    await store.sign_in(STUDENT, PASSWORD)
    token = store.session_token

    await store.sign_out()

    assert store.state.status == IdentityStatus.SIGNED_OUT
    assert store.session_token is None
    assert await provider.resolve(token) is None


@pytest.mark.asyncio
async def test_unsubscribed_listener_is_not_called(provider):
    store = IdentityStore(provider)
    seen = []
    unsubscribe = store.subscribe(seen.append)
    unsubscribe()

    await store.resolve(None)
    assert seen == []


@pytest.mark.asyncio
async def test_bearer_tokens_are_minted_per_call(provider):
    store = IdentityStore(provider)
    identity = await store.sign_in(STUDENT, PASSWORD)

    first = await identity.get_token()
    second = await identity.get_token()

    assert first != second
    assert provider.verify_id_token(first)["email"] == STUDENT
    # A session token is not accepted where a bearer token is expected.
    assert provider.verify_id_token(store.session_token) is None


@pytest.mark.asyncio
async def test_register_creates_account_with_profile():
    provider = build_provider()
    store = IdentityStore(provider)

    identity = await store.register(
        "New.Person@Example.com",
        "secret123",
        display_name="New Person",
        photo_url="https://img.test/p.png",
    )

    assert identity.email == "new.person@example.com"
    assert identity.display_name == "New Person"
    assert identity.photo_url == "https://img.test/p.png"
    assert store.state.status == IdentityStatus.SIGNED_IN


@pytest.mark.asyncio
async def test_duplicate_registration_is_rejected(provider):
    store = IdentityStore(provider)
    with pytest.raises(ValidationFailed) as excinfo:
        await store.register(STUDENT, "secret123", display_name="Again")
    assert excinfo.value.field == "email"


@pytest.mark.asyncio
async def test_slow_account_store_does_not_block_the_event_loop(provider):
    token = (await signed_in(provider, STUDENT)).session_token
    store = IdentityStore(slowed(provider, 0.3))
    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            ticks += 1
            await asyncio.sleep(0.01)

    ticking = asyncio.ensure_future(ticker())
    state = await store.resolve(token)
    ticking.cancel()

    assert state.status == IdentityStatus.SIGNED_IN
    assert ticks >= 5
