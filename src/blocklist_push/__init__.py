"""blocklist-push - transactional fan-out of block-list additions to network devices."""

__version__ = "0.1.0"
