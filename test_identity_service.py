# test_identity_service.py

import pytest
import pytest_asyncio

from audit import utcnow
from conftest import PASSWORD
from identity_service import ACCOUNT_JUST_LOCKED, INVALID_CREDENTIALS, IdentityService
from identity_store import SessionState, UserStore, hash_password, verify_password


@pytest_asyncio.fixture
async def state():
    return SessionState()


@pytest_asyncio.fixture
async def store(session, settings, state):
    return UserStore(session, state, settings)


@pytest_asyncio.fixture
async def identity(store, settings):
    return IdentityService(store, settings)


def test_password_hash_round_trip():
    hashed = hash_password("s3cret", iterations=1000)
    assert hashed.startswith("pbkdf2:sha256:1000$")
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret", "plain-text")
    assert not verify_password("s3cret", "pbkdf2:sha256:x$salt$hash")


@pytest.mark.asyncio
async def test_login_success_signs_in_and_stamps(identity, store, state, users):
    result = await identity.login("alice@example.com", PASSWORD, remember_me=True)

    assert result.success
    assert result.error_message is None
    assert result.user.id == users.alice
    assert result.user.roles == ["Admin"]
    assert state.user_id == users.alice
    assert state.persistent

    user = await store.find_by_email("ALICE@example.com")
    assert user.last_login_date is not None
    assert user.access_failed_count == 0


@pytest.mark.asyncio
async def test_non_admin_has_no_roles(identity, users):
    result = await identity.login("bob@example.com", PASSWORD)
    assert result.success
    assert result.user.roles == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email, password",
    [
        ("nobody@example.com", PASSWORD),
        ("alice@example.com", "wrong-password"),
        ("carol@example.com", PASSWORD),
        ("", PASSWORD),
        ("alice@example.com", None),
    ],
)
async def test_login_failures_share_one_message(identity, state, users, email, password):
    result = await identity.login(email, password)
    assert not result.success
    assert result.error_message == INVALID_CREDENTIALS
    assert result.user is None
    assert state.user_id is None


@pytest.mark.asyncio
async def test_repeated_failures_lock_the_account(identity, store, users):
    # settings fixture allows three attempts
    assert (await identity.login("bob@example.com", "bad")).error_message == INVALID_CREDENTIALS
    assert (await identity.login("bob@example.com", "bad")).error_message == INVALID_CREDENTIALS
    assert (await identity.login("bob@example.com", "bad")).error_message == ACCOUNT_JUST_LOCKED

    user = await store.find_by_email("bob@example.com")
    assert await store.is_locked_out(user)
    assert await store.get_lockout_end(user) > utcnow()

    # Even the right password is refused while locked, with a distinct message
    result = await identity.login("bob@example.com", PASSWORD)
    assert not result.success
    assert result.error_message.startswith("Your account is locked until")


@pytest.mark.asyncio
async def test_successful_login_resets_failed_count(identity, store, users):
    await identity.login("bob@example.com", "bad")
    assert (await store.find_by_email("bob@example.com")).access_failed_count == 1

    assert (await identity.login("bob@example.com", PASSWORD)).success
    assert (await store.find_by_email("bob@example.com")).access_failed_count == 0


@pytest.mark.asyncio
async def test_current_user_and_logout(identity, store, state, users):
    assert await identity.get_current_user() is None

    await identity.login("alice@example.com", PASSWORD)
    current = await identity.get_current_user()
    assert current.email == "alice@example.com"

    await identity.logout()
    assert state.user_id is None
    assert await identity.get_current_user() is None


@pytest.mark.asyncio
async def test_current_user_hides_inactive_accounts(identity, state, users):
    state.user_id = users.carol
    assert await identity.get_current_user() is None
