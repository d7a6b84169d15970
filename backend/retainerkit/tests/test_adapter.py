"""
Identity adapter tests against the relational store.
"""
import pytest
import uuid
from datetime import datetime, timedelta, timezone
from sqlalchemy import func, select

from retainerkit.auth.adapter import (
    AdapterAccount, AdapterSession, AdapterUser, SqlAlchemyAdapter, VerificationTokenData
)
from retainerkit.database.models import Account, UserSession
from retainerkit.errors import NotFoundError, ValidationError


@pytest.fixture
def adapter(db_session) -> SqlAlchemyAdapter:
    return SqlAlchemyAdapter(db_session)


@pytest.fixture
def user(adapter) -> AdapterUser:
    return adapter.create_user(AdapterUser(name="Ada", email="Ada@Example.com"))


def _in(days: int = 30) -> datetime:
    return (datetime.now(timezone.utc) + timedelta(days=days)).replace(microsecond=0)


class TestUsers:

    def test_create_user_normalizes_email(self, user):
        assert user.id is not None
        assert user.email == "ada@example.com"

    def test_get_user_by_email_is_case_insensitive(self, adapter, user):
        assert adapter.get_user_by_email("ADA@example.com").id == user.id
        assert adapter.get_user_by_email("nobody@example.com") is None

    def test_get_user_unknown(self, adapter):
        assert adapter.get_user(uuid.uuid4()) is None

    def test_update_user_is_partial(self, adapter, user):
        updated = adapter.update_user(AdapterUser(id=user.id, image="avatar.png"))

        assert updated.image == "avatar.png"
        assert updated.name == "Ada"
        assert updated.email == "ada@example.com"

    def test_update_user_requires_id(self, adapter):
        with pytest.raises(ValidationError):
            adapter.update_user(AdapterUser(name="Nobody"))

    def test_update_unknown_user(self, adapter):
        with pytest.raises(NotFoundError):
            adapter.update_user(AdapterUser(id=uuid.uuid4(), name="Ghost"))

    def test_delete_user_cascades(self, adapter, user, db_session):
        adapter.link_account(AdapterAccount(user_id=user.id, provider="github", provider_account_id="42"))
        adapter.create_session(AdapterSession(session_token="tok", user_id=user.id, expires=_in()))

        adapter.delete_user(user.id)

        assert adapter.get_user(user.id) is None
        assert db_session.scalar(select(func.count(Account.id))) == 0
        assert db_session.scalar(select(func.count(UserSession.session_token))) == 0


class TestAccounts:

    def test_link_and_lookup(self, adapter, user):
        adapter.link_account(AdapterAccount(user_id=user.id, provider="github", provider_account_id="42"))

        assert adapter.get_user_by_account("github", "42").id == user.id
        assert adapter.get_user_by_account("github", "43") is None

    def test_link_twice_keeps_one_row(self, adapter, user, db_session):
        account = AdapterAccount(user_id=user.id, provider="github", provider_account_id="42")

        adapter.link_account(account)
        adapter.link_account(account)

        assert db_session.scalar(select(func.count(Account.id))) == 1

    def test_unlink(self, adapter, user):
        adapter.link_account(AdapterAccount(user_id=user.id, provider="github", provider_account_id="42"))

        adapter.unlink_account("github", "42")

        assert adapter.get_user_by_account("github", "42") is None


class TestSessions:

    def test_create_and_get(self, adapter, user):
        expires = _in()
        adapter.create_session(AdapterSession(session_token="tok", user_id=user.id, expires=expires))

        found = adapter.get_session_and_user("tok")

        assert found.user.id == user.id
        assert found.session.expires == expires
        assert adapter.get_session_and_user("missing") is None

    def test_update_session_expiry(self, adapter, user):
        adapter.create_session(AdapterSession(session_token="tok", user_id=user.id, expires=_in(1)))
        later = _in(60)

        updated = adapter.update_session(AdapterSession(session_token="tok", expires=later))

        assert updated.expires == later
        assert updated.user_id == user.id

    def test_update_missing_session(self, adapter):
        assert adapter.update_session(AdapterSession(session_token="missing", expires=_in())) is None

    def test_delete_session(self, adapter, user):
        adapter.create_session(AdapterSession(session_token="tok", user_id=user.id, expires=_in()))

        adapter.delete_session("tok")
        adapter.delete_session("tok")

        assert adapter.get_session_and_user("tok") is None


class TestVerificationTokens:

    def test_token_is_single_use(self, adapter):
        expires = _in(1)
        adapter.create_verification_token(
            VerificationTokenData(identifier="ada@example.com", token="abc", expires=expires)
        )

        first = adapter.use_verification_token("ada@example.com", "abc")
        second = adapter.use_verification_token("ada@example.com", "abc")

        assert first.token == "abc"
        assert first.expires == expires
        assert second is None

    def test_unknown_token(self, adapter):
        assert adapter.use_verification_token("ada@example.com", "nope") is None
