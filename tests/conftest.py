"""Shared fixtures: a scriptable in-memory device transport."""
import asyncio
import logging
from typing import Optional

import pytest

from blocklist_push.devices.base import NetworkDevice
from blocklist_push.push_engine import AddressListBuilder
from blocklist_push.schema import ConfigurationFragment, Credentials, DeviceTarget


class FakeDevice(NetworkDevice):
    """NetworkDevice whose steps succeed unless told otherwise.

    Args:
        fail: step name -> message returned as (False, message)
        raise_on: step name -> exception raised by that step
        hang_on: step names that never return
    """

    def __init__(
        self,
        target: DeviceTarget,
        fail: Optional[dict] = None,
        raise_on: Optional[dict] = None,
        hang_on: Optional[set] = None,
    ):
        super().__init__(target, timeout=5)
        self.fail = dict(fail or {})
        self.raise_on = dict(raise_on or {})
        self.hang_on = set(hang_on or ())
        self.calls: list[str] = []
        self.loaded: list[ConfigurationFragment] = []
        self.commit_comments: list[Optional[str]] = []

    async def _step(self, name: str) -> tuple[bool, str]:
        self.calls.append(name)
        if name in self.hang_on:
            await asyncio.sleep(3600)
        if name in self.raise_on:
            raise self.raise_on[name]
        if name in self.fail:
            return False, self.fail[name]
        return True, f"{name} ok"

    async def connect(self) -> tuple[bool, str]:
        result = await self._step("connect")
        self._connected = result[0]
        return result

    async def disconnect(self) -> None:
        self.calls.append("disconnect")
        self._connected = False
        if "disconnect" in self.raise_on:
            raise self.raise_on["disconnect"]

    async def lock(self) -> tuple[bool, str]:
        return await self._step("lock")

    async def load_config(self, fragment: ConfigurationFragment) -> tuple[bool, str]:
        self.loaded.append(fragment)
        return await self._step("load_config")

    async def check_config(self) -> tuple[bool, str]:
        return await self._step("check_config")

    async def commit(self, comment: Optional[str] = None) -> tuple[bool, str]:
        self.commit_comments.append(comment)
        return await self._step("commit")

    async def unlock(self) -> tuple[bool, str]:
        return await self._step("unlock")

    def render_config(self, fragment: ConfigurationFragment) -> str:
        return "\n".join(e.value for e in fragment.entries)


class FakeFleet:
    """Device factory that hands out FakeDevices scripted per host."""

    def __init__(self, scripts: Optional[dict] = None):
        self.scripts = scripts or {}
        self.devices: dict[str, FakeDevice] = {}

    def __call__(self, target: DeviceTarget) -> FakeDevice:
        device = FakeDevice(target, **self.scripts.get(target.host, {}))
        self.devices[target.host] = device
        return device


@pytest.fixture
def credentials():
    return Credentials(username="netops", password="s3cret")


@pytest.fixture
def make_targets(credentials):
    def _make(*hosts):
        return [DeviceTarget(host=h, credentials=credentials) for h in hosts]
    return _make


@pytest.fixture
def fragment():
    return AddressListBuilder().build("blocklist", ["10.0.0.1", "10.0.0.2"], "ticket 42")


@pytest.fixture
def target(credentials):
    return DeviceTarget(host="fw1.example.net", credentials=credentials)


@pytest.fixture(autouse=True)
def reset_package_logging(tmp_path, monkeypatch):
    """Keep log files in tmp and drop handlers installed by setup_logging()."""
    monkeypatch.setenv("BLOCKLIST_PUSH_LOG_FILE", str(tmp_path / "logs" / "blocklist-push.log"))
    yield
    for name in ("blocklist_push", "blocklist_push.perf"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
    logging.getLogger("blocklist_push.perf").propagate = True
