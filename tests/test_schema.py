"""Tests for the shared data model."""
import dataclasses

import pytest

from blocklist_push.schema import (
    AddressEntry,
    ConfigurationFragment,
    Credentials,
    DeviceTarget,
    InvalidConfiguration,
    OutcomeKind,
    TransactionOutcome,
    canonical_ipv4,
)


class TestCanonicalIPv4:
    """Tests for IPv4 canonicalization."""

    def test_address_unchanged(self):
        assert canonical_ipv4("192.0.2.10") == "192.0.2.10"

    def test_network_unchanged(self):
        assert canonical_ipv4("198.51.100.0/24") == "198.51.100.0/24"

    def test_host_bits_cleared(self):
        assert canonical_ipv4("198.51.100.77/24") == "198.51.100.0/24"

    def test_whitespace_stripped(self):
        assert canonical_ipv4("  192.0.2.1 ") == "192.0.2.1"

    @pytest.mark.parametrize("value", ["", "300.1.1.1", "2001:db8::1", "10.0.0.0/33", "host"])
    def test_invalid_rejected(self, value):
        with pytest.raises(ValueError):
            canonical_ipv4(value)


class TestAddressEntry:
    """Tests for AddressEntry."""

    def test_canonical_value_accepted(self):
        entry = AddressEntry("10.0.0.1")
        assert str(entry) == "10.0.0.1"
        assert entry.is_network is False

    def test_network_entry(self):
        assert AddressEntry("10.0.0.0/8").is_network is True

    def test_non_canonical_rejected(self):
        """Direct construction requires canonical text."""
        with pytest.raises(ValueError):
            AddressEntry("10.0.0.5/8")

    def test_parse_normalizes(self):
        assert AddressEntry.parse(" 10.0.0.5/8").value == "10.0.0.0/8"

    def test_immutable(self):
        entry = AddressEntry("10.0.0.1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.value = "10.0.0.2"


class TestConfigurationFragment:
    """Tests for ConfigurationFragment."""

    def test_entries_frozen_to_tuple(self):
        fragment = ConfigurationFragment("blocklist", [AddressEntry("10.0.0.1")])
        assert isinstance(fragment.entries, tuple)
        assert len(fragment) == 1

    def test_empty_list_name_rejected(self):
        with pytest.raises(InvalidConfiguration):
            ConfigurationFragment("  ")

    def test_immutable(self):
        fragment = ConfigurationFragment("blocklist")
        with pytest.raises(dataclasses.FrozenInstanceError):
            fragment.list_name = "other"

    def test_to_dict(self):
        fragment = ConfigurationFragment(
            "blocklist", (AddressEntry("10.0.0.1"), AddressEntry("10.0.0.0/24")), "why"
        )
        assert fragment.to_dict() == {
            "list_name": "blocklist",
            "entries": ["10.0.0.1", "10.0.0.0/24"],
            "comment": "why",
        }


class TestTargets:
    """Tests for Credentials and DeviceTarget."""

    def test_password_not_in_repr(self):
        creds = Credentials("netops", "hunter2")
        target = DeviceTarget("fw1", creds)
        assert "hunter2" not in repr(creds)
        assert "hunter2" not in repr(target)

    def test_default_port(self):
        target = DeviceTarget("fw1", Credentials("netops"))
        assert target.port == 830
        assert target.device_id == "fw1"

    def test_custom_port_in_device_id(self):
        target = DeviceTarget("fw1", Credentials("netops"), port=8830)
        assert target.device_id == "fw1:8830"

    def test_shared_credentials(self):
        creds = Credentials("netops", "pw")
        a = DeviceTarget("fw1", creds)
        b = DeviceTarget("fw2", creds)
        assert a.credentials is b.credentials


class TestTransactionOutcome:
    """Tests for TransactionOutcome."""

    def test_committed_succeeds(self):
        outcome = TransactionOutcome("fw1", OutcomeKind.COMMITTED)
        assert outcome.succeeded is True
        assert outcome.unlock_notice() is None
        assert outcome.status_line() == "fw1: configuration committed"

    def test_failure_status_line(self):
        outcome = TransactionOutcome("fw1", OutcomeKind.VALIDATE_FAILED, "missing mandatory statement")
        assert outcome.succeeded is False
        assert outcome.status_line() == "fw1: configuration check failed: missing mandatory statement"

    def test_unlock_notice_is_separate(self):
        outcome = TransactionOutcome("fw1", OutcomeKind.COMMITTED, unlock_error="not locked")
        notice = outcome.unlock_notice()
        assert outcome.kind == OutcomeKind.COMMITTED
        assert notice.kind == OutcomeKind.UNLOCK_FAILED
        assert notice.unlock_error is None
        assert notice.status_line() == "fw1: unable to unlock configuration: not locked"

    def test_every_kind_has_description(self):
        for kind in OutcomeKind:
            assert kind.description

    def test_to_dict(self):
        outcome = TransactionOutcome("fw1", OutcomeKind.LOCK_FAILED, "busy")
        assert outcome.to_dict() == {
            "device_id": "fw1",
            "outcome": "lock_failed",
            "detail": "busy",
            "unlock_error": None,
        }
