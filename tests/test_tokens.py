"""Tests for the Confirmation Token Issuer."""

import pytest

from tollgate.gate import ConfirmationTokenIssuer


@pytest.fixture
def issuer(clock) -> ConfirmationTokenIssuer:
    return ConfirmationTokenIssuer(ttl_seconds=60, clock=clock)


class TestIssue:

    def test_token_record(self, issuer, clock):
        """A token expires 60s after issue and starts unused."""
        value = issuer.issue()
        record = issuer.outstanding
        assert value.startswith("ACK_")
        assert record.token == value
        assert record.issued_at == clock.now
        assert (record.expires_at - record.issued_at).total_seconds() == 60
        assert record.used is False

    def test_new_token_replaces_old(self, issuer):
        """At most one token is outstanding."""
        first = issuer.issue()
        second = issuer.issue()
        assert first != second
        assert "Invalid token" in issuer.consume(first).reason
        assert issuer.consume(second).valid


class TestConsume:

    def test_nothing_issued(self, issuer):
        check = issuer.consume("ACK_1_deadbeef")
        assert not check.valid
        assert "No high-risk token set" in check.reason

    def test_one_shot(self, issuer):
        """The identical string is refused on reuse."""
        token = issuer.issue()
        assert issuer.consume(token).valid
        assert issuer.outstanding.used is True

        again = issuer.consume(token)
        assert not again.valid
        assert "already used" in again.reason

    def test_expired_after_ttl(self, issuer, clock):
        """Expiry wins over a matching string."""
        token = issuer.issue()
        clock.advance(seconds=61)
        check = issuer.consume(token)
        assert not check.valid
        assert "expired" in check.reason.lower()
        # Expired tokens are dropped
        assert issuer.outstanding is None

    def test_valid_at_exact_ttl(self, issuer, clock):
        """Expiry is strictly after expires_at."""
        token = issuer.issue()
        clock.advance(seconds=60)
        assert issuer.consume(token).valid

    def test_mismatch(self, issuer):
        issuer.issue()
        check = issuer.consume("ACK_0_00000000")
        assert not check.valid
        assert "Invalid token" in check.reason

    def test_missing_value(self, issuer):
        """An issued token still needs to be presented."""
        issuer.issue()
        check = issuer.consume(None)
        assert not check.valid
        assert "high_risk_token" in check.reason

    def test_mismatch_does_not_consume(self, issuer):
        """A wrong guess leaves the real token usable."""
        token = issuer.issue()
        assert not issuer.consume("wrong").valid
        assert issuer.consume(token).valid

    def test_revoke(self, issuer):
        token = issuer.issue()
        issuer.revoke()
        assert not issuer.consume(token).valid
