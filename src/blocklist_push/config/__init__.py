"""Configuration loading and address validation."""
from .addresses import parse_address, validate_addresses
from .inventory import PushInventory

__all__ = ["parse_address", "validate_addresses", "PushInventory"]
