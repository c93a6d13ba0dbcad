"""Junos device handler using NETCONF over SSH (junos-eznc).

The candidate datastore workflow maps one-to-one onto the PyEZ Config
utility:
- lock()         -> Config.lock()
- load_config()  -> Config.load(..., format="text", merge=True)
- check_config() -> Config.commit_check()
- commit()       -> Config.commit(comment=...)
- unlock()       -> Config.unlock()

PyEZ is synchronous, so every call runs in the default executor.
"""
import asyncio
import logging
import math
from typing import Any, Callable, Optional

from jnpr.junos import Device
from jnpr.junos.exception import (
    CommitError,
    ConfigLoadError,
    ConnectError,
    LockError,
    RpcError,
    UnlockError,
)
from jnpr.junos.utils.config import Config

from ..schema import ConfigurationFragment, DeviceTarget
from .base import NetworkDevice

logger = logging.getLogger(__name__)


def error_message(err: Exception) -> str:
    """Best human-readable text for a PyEZ exception."""
    rpc_error = getattr(err, "rpc_error", None)
    if isinstance(rpc_error, dict) and rpc_error.get("message"):
        return str(rpc_error["message"]).strip()
    return str(err) or err.__class__.__name__


def render_prefix_list(fragment: ConfigurationFragment) -> str:
    """Render the fragment as a Junos policy-options prefix-list stanza."""
    lines = [
        "policy-options {",
        f"    prefix-list {fragment.list_name} {{",
    ]
    for entry in fragment.entries:
        lines.append(f"        {entry.value};")
    lines.append("    }")
    lines.append("}")
    return "\n".join(lines)


class JunosDevice(NetworkDevice):
    """Junos handler driving the candidate datastore over NETCONF."""

    def __init__(self, target: DeviceTarget, timeout: float = 30):
        super().__init__(target, timeout)
        self._dev: Optional[Device] = None
        self._cu: Optional[Config] = None

    async def _run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: func(*args, **kwargs))

    def _config(self) -> Config:
        if self._cu is None:
            raise ConnectionError("Not connected")
        return self._cu

    @property
    def pyez_timeout(self) -> int:
        """Step timeout as the whole seconds PyEZ expects, at least 1."""
        return max(1, math.ceil(self.timeout))

    async def connect(self) -> tuple[bool, str]:
        """Open a NETCONF session with the device.

        If the caller gives up while the session is still opening, the
        device that opens late is closed as soon as it is ready.
        """
        logger.debug(f"Opening NETCONF session to {self.device_id}")

        def _connect():
            dev = Device(
                host=self.host,
                port=self.target.port,
                user=self.target.credentials.username,
                passwd=self.target.credentials.password,
                gather_facts=False,
                conn_open_timeout=self.pyez_timeout,
            )
            dev.open()
            # RPC timeout, so blocked executor threads end with the step
            dev.timeout = self.pyez_timeout
            return dev

        opening = asyncio.ensure_future(self._run(_connect))
        try:
            self._dev = await asyncio.shield(opening)
        except ConnectError as e:
            return False, error_message(e)
        except asyncio.CancelledError:
            opening.add_done_callback(self._close_abandoned)
            raise

        self._cu = Config(self._dev)
        self._connection = self._dev
        self._connected = True
        logger.debug(f"Connected to {self.device_id}")
        return True, f"Connected to {self.device_id}"

    def _close_abandoned(self, opening: "asyncio.Future[Device]") -> None:
        if opening.cancelled() or opening.exception() is not None:
            return
        logger.debug(f"Closing NETCONF session to {self.device_id} opened after the step gave up")
        try:
            opening.result().close()
        except Exception as e:
            logger.warning(f"Error closing late session to {self.device_id}: {e}")

    async def disconnect(self) -> None:
        """Close the NETCONF session."""
        dev = self._dev
        self._dev = None
        self._cu = None
        self._connection = None
        self._connected = False
        if dev is not None:
            await self._run(dev.close)
            logger.debug(f"Disconnected from {self.device_id}")

    async def lock(self) -> tuple[bool, str]:
        try:
            await self._run(self._config().lock)
        except (LockError, RpcError) as e:
            return False, error_message(e)
        return True, "Candidate configuration locked"

    async def load_config(self, fragment: ConfigurationFragment) -> tuple[bool, str]:
        text = self.render_config(fragment)
        try:
            await self._run(self._config().load, text, format="text", merge=True)
        except (ConfigLoadError, RpcError) as e:
            return False, error_message(e)
        return True, f"Loaded {len(fragment)} entries into prefix-list {fragment.list_name}"

    async def check_config(self) -> tuple[bool, str]:
        try:
            await self._run(self._config().commit_check)
        except (CommitError, RpcError) as e:
            return False, error_message(e)
        return True, "Candidate configuration check succeeded"

    async def commit(self, comment: Optional[str] = None) -> tuple[bool, str]:
        cu = self._config()
        try:
            if comment:
                await self._run(cu.commit, comment=comment)
            else:
                await self._run(cu.commit)
        except (CommitError, RpcError) as e:
            return False, error_message(e)
        return True, "Configuration committed"

    async def unlock(self) -> tuple[bool, str]:
        try:
            await self._run(self._config().unlock)
        except (UnlockError, RpcError) as e:
            return False, error_message(e)
        return True, "Candidate configuration unlocked"

    def render_config(self, fragment: ConfigurationFragment) -> str:
        return render_prefix_list(fragment)
