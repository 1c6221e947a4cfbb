"""Tests for the reset-token delivery adapters."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from authcore.services._shared.ports import InMemoryResetTokenSender, LoggingResetTokenSender, ResetMessage

MESSAGE = ResetMessage(
    user_id="u-1",
    email="a@example.com",
    token="raw-reset-token-value",
    expires_at=datetime(2024, 5, 1, 12, 30, tzinfo=UTC),
)


def test_outbox_keeps_messages_per_email():
    sender = InMemoryResetTokenSender()
    sender.send(MESSAGE)
    assert sender.outbox == [MESSAGE]
    assert sender.last_for("a@example.com") == MESSAGE
    assert sender.last_for("b@example.com") is None


def test_logging_sender_never_logs_the_token(caplog):
    caplog.set_level(logging.INFO)
    LoggingResetTokenSender().send(MESSAGE)
    assert caplog.records
    assert all("raw-reset-token-value" not in r.getMessage() for r in caplog.records)
    assert all(getattr(r, "token", None) is None for r in caplog.records)


def test_outbox_lookup_is_per_message_kind():
    sender = InMemoryResetTokenSender()
    verification = ResetMessage(
        user_id="u-1",
        email="a@example.com",
        token="raw-verification-token",
        expires_at=MESSAGE.expires_at,
        kind="email_verification",
    )
    sender.send(MESSAGE)
    sender.send(verification)
    assert sender.last_for("a@example.com") == MESSAGE
    assert sender.last_for("a@example.com", kind="email_verification") == verification


def test_logging_sender_names_the_event_after_the_kind(caplog):
    caplog.set_level(logging.INFO)
    LoggingResetTokenSender().send(
        ResetMessage(
            user_id="u-1",
            email="a@example.com",
            token="raw-verification-token",
            expires_at=MESSAGE.expires_at,
            kind="email_verification",
        )
    )
    assert [r.getMessage() for r in caplog.records] == ["email_verification.dispatched"]
