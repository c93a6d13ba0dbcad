"""Device handlers for the supported network operating systems."""
from ..schema import DeviceTarget
from .base import NetworkDevice
from .junos import JunosDevice

__all__ = [
    "NetworkDevice",
    "JunosDevice",
    "DEVICE_TYPES",
    "create_device",
]

# Device type registry
DEVICE_TYPES = {
    "junos": JunosDevice,
}


def create_device(target: DeviceTarget, device_type: str = "junos", timeout: float = 30) -> NetworkDevice:
    """Factory function to create device instances."""
    device_type = (device_type or "").lower()
    if device_type not in DEVICE_TYPES:
        raise ValueError(f"Unknown device type: {device_type}")

    device_class = DEVICE_TYPES[device_type]
    return device_class(target, timeout=timeout)
