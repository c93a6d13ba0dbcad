"""Data model shared by the push engine and the device drivers.

Defines the configuration fragment pushed to every device, the targets it
is pushed to and the per-device outcome records.
"""
import ipaddress
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class InvalidConfiguration(ValueError):
    """Pre-flight violation that aborts the whole run."""
    pass


def canonical_ipv4(text: str) -> str:
    """Return the canonical form of an IPv4 address or network.

    "10.0.0.1" stays an address, "10.0.0.0/24" stays a network and a
    network written with host bits set is reduced to its network address.

    Raises:
        ValueError: If text is not IPv4
    """
    text = text.strip()
    if "/" in text:
        return str(ipaddress.IPv4Network(text, strict=False))
    return str(ipaddress.IPv4Address(text))


@dataclass(frozen=True)
class AddressEntry:
    """A single IPv4 address or network in canonical string form."""
    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or canonical_ipv4(self.value) != self.value:
            raise ValueError(f"Not a canonical IPv4 address or network: {self.value!r}")

    @classmethod
    def parse(cls, text: str) -> "AddressEntry":
        """Build an entry from free-form text, normalizing it first."""
        return cls(canonical_ipv4(text))

    @property
    def is_network(self) -> bool:
        return "/" in self.value

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ConfigurationFragment:
    """Named list of address entries plus the commit comment.

    Built once per run and shared read-only by every device session.
    """
    list_name: str
    entries: tuple[AddressEntry, ...] = ()
    comment: str = ""

    def __post_init__(self):
        if not self.list_name or not self.list_name.strip():
            raise InvalidConfiguration("List name must not be empty")
        # Freeze whatever sequence was passed in
        object.__setattr__(self, "entries", tuple(self.entries))

    def __len__(self) -> int:
        return len(self.entries)

    def to_dict(self) -> dict:
        return {
            "list_name": self.list_name,
            "entries": [e.value for e in self.entries],
            "comment": self.comment,
        }


@dataclass(frozen=True)
class Credentials:
    """Credentials shared by every target in a run."""
    username: str
    password: str = field(default="", repr=False)


@dataclass(frozen=True)
class DeviceTarget:
    """One device addressed by the distribution run."""
    host: str
    credentials: Credentials
    port: int = 830

    @property
    def device_id(self) -> str:
        return self.host if self.port == 830 else f"{self.host}:{self.port}"


class SessionState(str, Enum):
    """Protocol states of a device session."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    LOCKED = "locked"
    STAGED = "staged"
    VALIDATED = "validated"
    COMMITTED = "committed"
    UNLOCKED = "unlocked"
    FAILED = "failed"


class OutcomeKind(str, Enum):
    """How far one device's transaction progressed."""
    COMMITTED = "committed"
    LOCK_FAILED = "lock_failed"
    EDIT_FAILED = "edit_failed"
    VALIDATE_FAILED = "validate_failed"
    COMMIT_FAILED = "commit_failed"
    UNLOCK_FAILED = "unlock_failed"
    CONNECTION_FAILED = "connection_failed"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    OutcomeKind.COMMITTED: "configuration committed",
    OutcomeKind.LOCK_FAILED: "unable to lock configuration",
    OutcomeKind.EDIT_FAILED: "unable to load configuration changes",
    OutcomeKind.VALIDATE_FAILED: "configuration check failed",
    OutcomeKind.COMMIT_FAILED: "unable to commit configuration",
    OutcomeKind.UNLOCK_FAILED: "unable to unlock configuration",
    OutcomeKind.CONNECTION_FAILED: "unable to connect",
}


@dataclass(frozen=True)
class StepResult:
    """Result of one protocol step."""
    state: SessionState
    success: bool
    message: str = ""


@dataclass(frozen=True)
class TransactionOutcome:
    """Final record of one device's transaction attempt."""
    device_id: str
    kind: OutcomeKind
    detail: str = ""
    # Set when the best-effort unlock failed; never replaces `kind`
    unlock_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.kind is OutcomeKind.COMMITTED

    def unlock_notice(self) -> Optional["TransactionOutcome"]:
        """Separate UnlockFailed record for this device, if unlock failed."""
        if self.unlock_error is None:
            return None
        return TransactionOutcome(
            device_id=self.device_id,
            kind=OutcomeKind.UNLOCK_FAILED,
            detail=self.unlock_error,
        )

    def status_line(self) -> str:
        """One human-readable line for the operator."""
        if self.succeeded:
            return f"{self.device_id}: {self.kind.description}"
        return f"{self.device_id}: {self.kind.description}: {self.detail}"

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "outcome": self.kind.value,
            "detail": self.detail,
            "unlock_error": self.unlock_error,
        }
