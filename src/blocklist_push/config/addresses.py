"""IPv4 address validation for the entries to push."""
import logging
from typing import Iterable

from ..schema import AddressEntry, canonical_ipv4

logger = logging.getLogger(__name__)


def parse_address(text: str) -> AddressEntry:
    """Parse one address or network.

    Raises:
        ValueError: If text is not an IPv4 address or network
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Empty address")
    canonical = canonical_ipv4(text)
    if "/" in canonical and canonical != text.strip():
        logger.warning(f"Normalized {text.strip()} to network address {canonical}")
    return AddressEntry(canonical)


def validate_addresses(values: Iterable[str]) -> tuple[list[AddressEntry], list[str]]:
    """Split raw values into valid entries and rejected values.

    Order is preserved and duplicates are kept.

    Returns:
        Tuple of (entries, rejected)
    """
    entries = []
    rejected = []
    for value in values:
        try:
            entries.append(parse_address(value))
        except ValueError as e:
            logger.warning(f"Skipping invalid IPv4 address {value!r}: {e}")
            rejected.append(value)
    return entries, rejected
