"""Tests for the closed set of token claim variants."""

from __future__ import annotations

import pytest
from authcore.services._shared.claims import (
    AccessClaims,
    ClaimsError,
    PasswordResetClaims,
    RefreshClaims,
    TokenPurpose,
    claims_from_payload,
)


@pytest.mark.parametrize(
    "claims",
    [
        AccessClaims(subject="u-1", email="a@example.com"),
        RefreshClaims(subject="u-1", token_id="rt-1"),
        PasswordResetClaims(subject="u-1", token_id="prt-1"),
    ],
)
def test_payload_parses_back_to_same_variant(claims):
    assert claims_from_payload(claims.to_payload()) == claims


def test_reset_payload_carries_reset_purpose():
    payload = PasswordResetClaims(subject="u-1", token_id="prt-1").to_payload()
    assert payload["purpose"] == TokenPurpose.PASSWORD_RESET.value == "password_reset"
    assert payload["tid"] == "prt-1"


def test_unknown_purpose_is_rejected():
    with pytest.raises(ClaimsError):
        claims_from_payload({"sub": "u-1", "purpose": "admin"})


def test_missing_variant_claim_is_rejected():
    with pytest.raises(ClaimsError):
        claims_from_payload({"sub": "u-1", "purpose": "refresh"})
