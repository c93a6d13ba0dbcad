"""Per-device protocol state machine.

A session drives one device through:

    disconnected -> connected -> locked -> staged -> validated -> committed -> unlocked

Any failing step moves the session to `failed` and skips the remaining
steps. Once the lock was taken, unlock is attempted on every exit path and
its own failure is recorded next to, never instead of, the primary outcome.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..devices.base import NetworkDevice
from ..schema import (
    ConfigurationFragment,
    OutcomeKind,
    SessionState,
    StepResult,
    TransactionOutcome,
)
from ..utils.connection import TRANSPORT_EXCEPTIONS, describe_error
from ..utils.logging_config import timed_section

logger = logging.getLogger(__name__)

# Outcome reported when the step leading to a state fails
FAILURE_KINDS = {
    SessionState.CONNECTED: OutcomeKind.CONNECTION_FAILED,
    SessionState.LOCKED: OutcomeKind.LOCK_FAILED,
    SessionState.STAGED: OutcomeKind.EDIT_FAILED,
    SessionState.VALIDATED: OutcomeKind.VALIDATE_FAILED,
    SessionState.COMMITTED: OutcomeKind.COMMIT_FAILED,
    SessionState.UNLOCKED: OutcomeKind.UNLOCK_FAILED,
}

NEXT_STATE = {
    SessionState.DISCONNECTED: SessionState.CONNECTED,
    SessionState.CONNECTED: SessionState.LOCKED,
    SessionState.LOCKED: SessionState.STAGED,
    SessionState.STAGED: SessionState.VALIDATED,
    SessionState.VALIDATED: SessionState.COMMITTED,
    SessionState.COMMITTED: SessionState.UNLOCKED,
}


class DeviceSession:
    """One transactional push to one device."""

    def __init__(self, device: NetworkDevice, step_timeout: float = 30):
        self.device = device
        self.step_timeout = step_timeout
        self.state = SessionState.DISCONNECTED
        self.history: list[StepResult] = []
        self.outcome: Optional[TransactionOutcome] = None
        self._pending: Optional[SessionState] = None
        self._locked = False

    @property
    def device_id(self) -> str:
        return self.device.device_id

    @property
    def holds_lock(self) -> bool:
        return self._locked

    # === Protocol steps ===

    async def connect(self) -> StepResult:
        self._require(SessionState.DISCONNECTED, "connect")
        return await self._advance("connect", SessionState.CONNECTED, self.device.connect)

    async def lock(self) -> StepResult:
        self._require(SessionState.CONNECTED, "lock")
        result = await self._advance("lock", SessionState.LOCKED, self.device.lock)
        self._locked = result.success
        return result

    async def stage(self, fragment: ConfigurationFragment) -> StepResult:
        self._require(SessionState.LOCKED, "stage")
        return await self._advance(
            "stage",
            SessionState.STAGED,
            lambda: self.device.load_config(fragment),
            entries=len(fragment),
        )

    async def validate(self) -> StepResult:
        self._require(SessionState.STAGED, "validate")
        return await self._advance("validate", SessionState.VALIDATED, self.device.check_config)

    async def commit(self, comment: Optional[str] = None) -> StepResult:
        self._require(SessionState.VALIDATED, "commit")
        return await self._advance(
            "commit",
            SessionState.COMMITTED,
            lambda: self.device.commit(comment or None),
        )

    async def unlock(self) -> StepResult:
        """Release the lock. Allowed from any state once lock succeeded."""
        if not self._locked:
            raise RuntimeError(f"{self.device_id}: unlock called without a held lock")
        result = await self._call("unlock", SessionState.UNLOCKED, self.device.unlock)
        self._locked = False
        # Only a committed session moves on; a failed one stays failed
        if result.success and self.state == SessionState.COMMITTED:
            self.state = SessionState.UNLOCKED
        return result

    async def close(self) -> None:
        """Tear down the transport. Errors are logged, never raised."""
        try:
            await asyncio.wait_for(self.device.disconnect(), timeout=self.step_timeout)
        except Exception as e:
            logger.warning(f"Error closing session to {self.device_id}: {describe_error(e)}")

    # === Full transaction ===

    async def run(self, fragment: ConfigurationFragment) -> TransactionOutcome:
        """Drive the device through the whole protocol.

        Returns:
            TransactionOutcome for this device
        """
        connected = await self.connect()
        if not connected.success:
            await self.close()
            return self._finish(OutcomeKind.CONNECTION_FAILED, connected.message)

        locked = await self.lock()
        if not locked.success:
            await self.close()
            return self._finish(OutcomeKind.LOCK_FAILED, locked.message)

        kind, detail = await self._apply(fragment)

        # The lock is held on every path that reaches this point
        released = await self.unlock()
        await self.close()
        return self._finish(
            kind,
            detail,
            unlock_error=None if released.success else released.message,
        )

    async def _apply(self, fragment: ConfigurationFragment) -> tuple[OutcomeKind, str]:
        """Stage, validate and commit; stop at the first failure."""
        staged = await self.stage(fragment)
        if not staged.success:
            return OutcomeKind.EDIT_FAILED, staged.message

        validated = await self.validate()
        if not validated.success:
            return OutcomeKind.VALIDATE_FAILED, validated.message

        committed = await self.commit(fragment.comment)
        if not committed.success:
            return OutcomeKind.COMMIT_FAILED, committed.message

        return OutcomeKind.COMMITTED, ""

    async def abort(self, error: BaseException) -> TransactionOutcome:
        """Outcome for an error that escaped the protocol steps.

        The step in flight, or else the step due next, decides the failure
        category. A lock that is still held is released and the transport
        closed before the outcome is returned.
        """
        in_flight = self._pending or NEXT_STATE.get(self.state)
        kind = FAILURE_KINDS.get(in_flight, OutcomeKind.CONNECTION_FAILED)
        self._pending = None
        self.state = SessionState.FAILED

        unlock_error = None
        if self._locked:
            released = await self.unlock()
            if not released.success:
                unlock_error = released.message
        await self.close()
        return self._finish(kind, describe_error(error), unlock_error=unlock_error)

    # === Internals ===

    def _require(self, expected: SessionState, step: str) -> None:
        if self.state != expected:
            raise RuntimeError(
                f"{self.device_id}: cannot {step} in state {self.state.value}"
            )

    async def _advance(
        self,
        step: str,
        next_state: SessionState,
        operation: Callable[[], Awaitable[tuple[bool, str]]],
        **extra,
    ) -> StepResult:
        result = await self._call(step, next_state, operation, **extra)
        self.state = next_state if result.success else SessionState.FAILED
        return result

    async def _call(
        self,
        step: str,
        next_state: SessionState,
        operation: Callable[[], Awaitable[tuple[bool, str]]],
        **extra,
    ) -> StepResult:
        """Run one bounded network operation and classify its result."""
        self._pending = next_state
        async with timed_section(step, device_id=self.device_id, **extra) as section:
            try:
                success, message = await asyncio.wait_for(operation(), timeout=self.step_timeout)
            except asyncio.TimeoutError:
                success, message = False, f"{step} timed out after {self.step_timeout}s"
            except TRANSPORT_EXCEPTIONS as e:
                success, message = False, describe_error(e)
            except Exception as e:
                logger.exception(f"Unexpected error during {step} on {self.device_id}")
                success, message = False, describe_error(e)
            if not success:
                section["status"] = f"FAIL: {message}"

        result = StepResult(state=next_state, success=success, message=message)
        self.history.append(result)
        self._pending = None
        logger.debug(
            f"{self.device_id}: {step} {'ok' if success else 'failed'}"
            + (f" ({message})" if message else "")
        )
        return result

    def _finish(
        self,
        kind: OutcomeKind,
        detail: str,
        unlock_error: Optional[str] = None,
    ) -> TransactionOutcome:
        self.outcome = TransactionOutcome(
            device_id=self.device_id,
            kind=kind,
            detail=detail,
            unlock_error=unlock_error,
        )
        return self.outcome
