"""Push configuration loaded from YAML.

```yaml
list_name: blocklist
device_type: junos
timeout: 30
concurrency: 1
defaults:
  port: 830
targets:
  - fw1.example.net
  - host: fw2.example.net
    port: 8830
groups:
  edge:
    - fw1.example.net
```
"""
import logging
import math
from pathlib import Path
from typing import Optional

import yaml

from ..devices import DEVICE_TYPES
from ..schema import Credentials, DeviceTarget, InvalidConfiguration

logger = logging.getLogger(__name__)

DEFAULT_PORT = 830
DEFAULT_TIMEOUT = 30
DEFAULT_CONCURRENCY = 1


class PushInventory:
    """Target devices and run settings loaded from the YAML config."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._targets: list[dict] = []
        self._timeout = float(DEFAULT_TIMEOUT)
        self._concurrency = DEFAULT_CONCURRENCY
        self._load_config()

    def _find_config(self) -> str:
        """Find the config file."""
        search_paths = [
            Path.cwd() / "configs" / "blocklist-push.yaml",
            Path.cwd() / "blocklist-push.yaml",
            Path.home() / ".config" / "blocklist-push" / "config.yaml",
            Path("/etc/blocklist-push/config.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find blocklist-push.yaml. Create one in ./configs/blocklist-push.yaml"
        )

    def _load_config(self) -> None:
        """Load and check the YAML configuration."""
        with open(self.config_path) as f:
            try:
                config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise InvalidConfiguration(f"{self.config_path}: {e}") from e

        if not isinstance(config, dict):
            raise InvalidConfiguration(f"{self.config_path}: expected a mapping at top level")
        self._config = config

        if not str(config.get("list_name") or "").strip():
            raise InvalidConfiguration(f"{self.config_path}: list_name is missing or empty")

        raw_targets = config.get("targets") or []
        if not isinstance(raw_targets, list) or not raw_targets:
            raise InvalidConfiguration(f"{self.config_path}: no targets defined")

        if self.device_type not in DEVICE_TYPES:
            raise InvalidConfiguration(
                f"{self.config_path}: unknown device_type '{self.device_type}'"
            )

        self._parse_run_settings(config)

        defaults = config.get("defaults", {}) or {}
        self._targets = [self._parse_target(t, defaults) for t in raw_targets]

        self._validate_groups()
        logger.debug(f"Loaded {len(self._targets)} targets from {self.config_path}")

    def _parse_run_settings(self, config: dict) -> None:
        """Check timeout and concurrency before anything is pushed."""
        timeout = config.get("timeout", DEFAULT_TIMEOUT)
        try:
            if isinstance(timeout, bool):
                raise TypeError(timeout)
            self._timeout = float(timeout)
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"{self.config_path}: invalid timeout {timeout!r}")
        if not math.isfinite(self._timeout) or self._timeout <= 0:
            raise InvalidConfiguration(
                f"{self.config_path}: timeout must be a positive number of seconds, got {timeout!r}"
            )

        concurrency = config.get("concurrency", DEFAULT_CONCURRENCY)
        try:
            if isinstance(concurrency, (bool, float)):
                raise TypeError(concurrency)
            self._concurrency = int(concurrency)
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"{self.config_path}: invalid concurrency {concurrency!r}")
        if self._concurrency < 1:
            raise InvalidConfiguration(
                f"{self.config_path}: concurrency must be at least 1, got {concurrency!r}"
            )

    def _parse_target(self, raw, defaults: dict) -> dict:
        """Normalize one target entry and merge defaults into it."""
        if isinstance(raw, str):
            target = {"host": raw}
        elif isinstance(raw, dict):
            target = dict(raw)
        else:
            raise InvalidConfiguration(f"Invalid target entry: {raw!r}")

        for key, value in defaults.items():
            if key not in target:
                target[key] = value

        host = str(target.get("host") or "").strip()
        if not host:
            raise InvalidConfiguration(f"Target entry without host: {raw!r}")
        target["host"] = host

        try:
            target["port"] = int(target.get("port", DEFAULT_PORT))
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"Invalid port for {host}: {target.get('port')!r}")
        return target

    # === Run settings ===

    @property
    def list_name(self) -> str:
        return str(self._config["list_name"]).strip()

    @property
    def device_type(self) -> str:
        return str(self._config.get("device_type", "junos"))

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def concurrency(self) -> int:
        return self._concurrency

    # === Targets ===

    def get_hosts(self) -> list[str]:
        """Get all target hosts in file order."""
        return [t["host"] for t in self._targets]

    def get_targets(
        self,
        credentials: Credentials,
        group: Optional[str] = None,
    ) -> list[DeviceTarget]:
        """Build DeviceTargets, optionally restricted to one group.

        Raises:
            KeyError: If group doesn't exist
        """
        targets = self._targets
        if group is not None:
            members = set(self.get_group_members(group))
            targets = [t for t in targets if t["host"] in members]

        return [
            DeviceTarget(host=t["host"], port=t["port"], credentials=credentials)
            for t in targets
        ]

    # === Group Management ===

    def _validate_groups(self) -> None:
        """Validate that all group members reference known targets."""
        groups = self._config.get("groups", {}) or {}
        hosts = set(self.get_hosts())

        for group_name, members in groups.items():
            if not isinstance(members, list):
                logger.warning(f"Group '{group_name}' should be a list of hosts")
                continue
            for host in members:
                if host not in hosts:
                    logger.warning(f"Group '{group_name}' references unknown target: {host}")

    def get_group_names(self) -> list[str]:
        """Get list of all group names."""
        return list((self._config.get("groups", {}) or {}).keys())

    def get_group_members(self, group_name: str) -> list[str]:
        """Get hosts in a group.

        Raises:
            KeyError: If group doesn't exist
        """
        groups = self._config.get("groups", {}) or {}
        if group_name not in groups:
            raise KeyError(f"Unknown group: {group_name}")
        members = groups[group_name]
        return list(members) if isinstance(members, list) else []
