"""Base device abstraction for the transactional push protocol."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..schema import ConfigurationFragment, DeviceTarget

logger = logging.getLogger(__name__)


class NetworkDevice(ABC):
    """Abstract base class for device transports.

    Every protocol operation returns a (success, message) tuple. Drivers
    translate the errors of their own client library into a False result
    and only raise for conditions they cannot classify.
    """

    def __init__(self, target: DeviceTarget, timeout: float = 30):
        self.target = target
        self.timeout = timeout
        self._connected = False
        self._connection: Any = None

    @property
    def device_id(self) -> str:
        return self.target.device_id

    @property
    def host(self) -> str:
        return self.target.host

    @property
    def is_connected(self) -> bool:
        return self._connected

    # Connection management
    @abstractmethod
    async def connect(self) -> tuple[bool, str]:
        """Open a session with the device."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the session with the device."""
        pass

    # Candidate datastore protocol
    @abstractmethod
    async def lock(self) -> tuple[bool, str]:
        """Take the exclusive lock on the candidate datastore."""
        pass

    @abstractmethod
    async def load_config(self, fragment: ConfigurationFragment) -> tuple[bool, str]:
        """Merge the fragment into the candidate datastore."""
        pass

    @abstractmethod
    async def check_config(self) -> tuple[bool, str]:
        """Check the candidate without activating it."""
        pass

    @abstractmethod
    async def commit(self, comment: Optional[str] = None) -> tuple[bool, str]:
        """Activate the candidate, attaching comment to the commit log if given."""
        pass

    @abstractmethod
    async def unlock(self) -> tuple[bool, str]:
        """Release the candidate datastore lock."""
        pass

    @abstractmethod
    def render_config(self, fragment: ConfigurationFragment) -> str:
        """Render the fragment in the device's configuration syntax."""
        pass

    # Context manager support
    async def __aenter__(self):
        success, message = await self.connect()
        if not success:
            raise ConnectionError(message)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False
