"""Fan-out of one configuration fragment to many devices.

Each target gets its own DeviceSession. A device's failure is turned into
its TransactionOutcome and never stops or alters any other device's run.
"""
import asyncio
import functools
import logging
from typing import Callable, Iterable, Optional

from ..devices import create_device
from ..devices.base import NetworkDevice
from ..schema import (
    ConfigurationFragment,
    DeviceTarget,
    InvalidConfiguration,
    OutcomeKind,
    TransactionOutcome,
)
from ..utils.connection import describe_error
from .session import DeviceSession

logger = logging.getLogger(__name__)

DeviceFactory = Callable[[DeviceTarget], NetworkDevice]
StatusCallback = Callable[[str], None]


class DistributionCoordinator:
    """
    Push a ConfigurationFragment to every target and collect the outcomes.

    Usage:
        coordinator = DistributionCoordinator(concurrency=4)
        outcomes = await coordinator.run(targets, fragment)
    """

    def __init__(
        self,
        device_factory: Optional[DeviceFactory] = None,
        concurrency: int = 1,
        step_timeout: float = 30,
        device_type: str = "junos",
        on_status: Optional[StatusCallback] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            device_factory: Builds the transport for a target (default: device registry)
            concurrency: Maximum sessions at once; 1 runs targets strictly in order
            step_timeout: Per-step network timeout in seconds
            device_type: Registry key used by the default factory
            on_status: Receives one line per device transition of interest
        """
        if concurrency < 1:
            raise InvalidConfiguration(f"Concurrency must be at least 1, got {concurrency}")
        if step_timeout <= 0:
            raise InvalidConfiguration(f"Step timeout must be positive, got {step_timeout}")

        self.concurrency = concurrency
        self.step_timeout = step_timeout
        self.device_factory = device_factory or functools.partial(
            create_device, device_type=device_type, timeout=step_timeout
        )
        self.on_status = on_status

    async def run(
        self,
        targets: Iterable[DeviceTarget],
        fragment: ConfigurationFragment,
    ) -> list[TransactionOutcome]:
        """
        Push the fragment to every target.

        Args:
            targets: Devices to push to
            fragment: Configuration shared read-only by every session

        Returns:
            One TransactionOutcome per target, in target order

        Raises:
            InvalidConfiguration: If there are no targets or no fragment
        """
        targets = list(targets)
        if not targets:
            raise InvalidConfiguration("No target devices to push to")
        if fragment is None:
            raise InvalidConfiguration("No configuration fragment to push")

        logger.info(
            f"Pushing {len(fragment)} entries to list '{fragment.list_name}' "
            f"on {len(targets)} device(s)"
        )

        if self.concurrency == 1:
            outcomes = []
            for target in targets:
                outcomes.append(await self._run_target(target, fragment))
            return outcomes

        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(target: DeviceTarget) -> TransactionOutcome:
            async with semaphore:
                return await self._run_target(target, fragment)

        # gather keeps submission order regardless of completion order
        return list(await asyncio.gather(*(_bounded(t) for t in targets)))

    async def _run_target(
        self,
        target: DeviceTarget,
        fragment: ConfigurationFragment,
    ) -> TransactionOutcome:
        """Run one device's transaction; never raises for device failures."""
        self._report(f"Connecting to {target.device_id}...")

        try:
            device = self.device_factory(target)
        except Exception as e:
            logger.warning(f"Could not create device for {target.device_id}: {e}")
            outcome = TransactionOutcome(
                device_id=target.device_id,
                kind=OutcomeKind.CONNECTION_FAILED,
                detail=describe_error(e),
            )
        else:
            session = DeviceSession(device, step_timeout=self.step_timeout)
            try:
                outcome = await session.run(fragment)
            except Exception as e:
                logger.exception(f"Session for {target.device_id} failed unexpectedly")
                outcome = await session.abort(e)

        self._report(outcome.status_line())
        notice = outcome.unlock_notice()
        if notice is not None:
            self._report(notice.status_line())
        return outcome

    def _report(self, line: str) -> None:
        logger.info(line)
        if self.on_status is None:
            return
        try:
            self.on_status(line)
        except Exception:
            logger.exception(f"Status callback failed for line: {line}")


def summarize(outcomes: Iterable[TransactionOutcome]) -> dict:
    """Totals for the per-device report table."""
    outcomes = list(outcomes)
    committed = sum(1 for o in outcomes if o.succeeded)
    return {
        "total": len(outcomes),
        "committed": committed,
        "failed": len(outcomes) - committed,
        "unlock_failures": sum(1 for o in outcomes if o.unlock_error is not None),
    }


def format_report(outcomes: Iterable[TransactionOutcome]) -> str:
    """Render outcomes as a fixed-width table, one row per device."""
    outcomes = list(outcomes)
    width = max([len("DEVICE")] + [len(o.device_id) for o in outcomes])
    lines = [f"{'DEVICE':{width}s}  {'OUTCOME':17s}  DETAIL"]
    for outcome in outcomes:
        detail = outcome.detail
        if outcome.unlock_error is not None:
            unlock_text = f"unlock failed: {outcome.unlock_error}"
            detail = f"{detail}; {unlock_text}" if detail else unlock_text
        lines.append(f"{outcome.device_id:{width}s}  {outcome.kind.value:17s}  {detail}".rstrip())
    return "\n".join(lines)
