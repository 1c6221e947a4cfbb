"""Password reset confirmation against the SQL stores and unit of work."""

from __future__ import annotations

import logging

import pytest
from authcore.repositories import PasswordResetTokenRepository, RefreshTokenRepository, UserRepository
from authcore.services._shared.tokens import PasswordResetTokenStatus, RefreshTokenStatus
from authcore.services.auth import AuthService, LoginIn
from authcore.services.password_reset import ConfirmResetIn, PasswordResetService, RequestResetIn
from authcore.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

from tests.helpers.utils import DEFAULT_PASSWORD, NEW_PASSWORD, make_account


def _service(codec, hasher, sender, clock, uow=SQLAlchemyUnitOfWork) -> PasswordResetService:
    return PasswordResetService(
        users=UserRepository(),
        reset_store=PasswordResetTokenRepository(),
        refresh_store=RefreshTokenRepository(),
        codec=codec,
        hasher=hasher,
        sender=sender,
        uow=uow,
        clock=clock,
    )


@pytest.fixture()
def account(session, hasher):
    return make_account(UserRepository(), hasher)


@pytest.fixture()
def session_id(account, codec, hasher, clock):
    auth = AuthService(
        users=UserRepository(),
        refresh_store=RefreshTokenRepository(),
        codec=codec,
        hasher=hasher,
        clock=clock,
    )
    return auth.login(LoginIn(email=account.email, password=DEFAULT_PASSWORD)).refresh_token_id


def _confirm(service, token):
    return service.confirm_reset(
        ConfirmResetIn(token=token, new_password=NEW_PASSWORD, confirm_password=NEW_PASSWORD)
    )


def test_confirm_commits_every_step(account, session_id, codec, hasher, sender, clock):
    service = _service(codec, hasher, sender, clock)
    service.request_reset(RequestResetIn(email=account.email))

    result = _confirm(service, sender.last_for(account.email).token)

    assert result.revoked_sessions == 1
    assert hasher.verify(NEW_PASSWORD, UserRepository().get(account.id).password_hash)
    [token] = PasswordResetTokenRepository().list_by_user(account.id)
    assert token.status is PasswordResetTokenStatus.USED
    assert RefreshTokenRepository().find_by_id(session_id).status is RefreshTokenStatus.REVOKED


def test_failed_session_revocation_rolls_back_the_whole_reset(
    account, session_id, codec, hasher, sender, clock, caplog
):
    caplog.set_level(logging.INFO, logger="authcore.audit")

    def failing_uow():
        uow = SQLAlchemyUnitOfWork()

        def unavailable(user_id):
            raise RuntimeError("database unavailable")

        uow.refresh_store.revoke_all_by_user = unavailable
        return uow

    failing = _service(codec, hasher, sender, clock, uow=failing_uow)
    failing.request_reset(RequestResetIn(email=account.email))
    token = sender.last_for(account.email).token

    with pytest.raises(RuntimeError):
        _confirm(failing, token)

    assert hasher.verify(DEFAULT_PASSWORD, UserRepository().get(account.id).password_hash)
    [stored] = PasswordResetTokenRepository().list_by_user(account.id)
    assert stored.status is PasswordResetTokenStatus.ACTIVE
    assert RefreshTokenRepository().find_by_id(session_id).status is RefreshTokenStatus.ACTIVE
    assert not any(r.getMessage() == "password_reset.completed" for r in caplog.records)

    # The token is still good once the store recovers
    assert _confirm(_service(codec, hasher, sender, clock), token).revoked_sessions == 1
