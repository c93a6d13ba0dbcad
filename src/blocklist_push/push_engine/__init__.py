"""Push Engine - transactional fan-out of one block-list change.

Usage:
    from blocklist_push.push_engine import AddressListBuilder, DistributionCoordinator

    fragment = AddressListBuilder().build("blocklist", ["10.0.0.1", "10.0.0.0/24"])
    outcomes = await DistributionCoordinator().run(targets, fragment)
"""

from .builder import AddressListBuilder
from .session import DeviceSession
from .coordinator import DistributionCoordinator, summarize, format_report

__all__ = [
    "AddressListBuilder",
    "DeviceSession",
    "DistributionCoordinator",
    "summarize",
    "format_report",
]
