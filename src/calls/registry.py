from __future__ import annotations

import asyncio
import logging

from calls.errors import InvalidCallStatusError
from calls.executor import CallExecutor
from calls.runtime import ScriptRuntime
from calls.schemas import CallRequest
from telephony.constants import COMPLETED_CALL_STATUS

LOGGER = logging.getLogger(__name__)


class CallRegistry:
    """In-memory map of call SID to CallExecutor.

    Note: This is a single-process registry. Twilio may deliver webhooks for
    one call to any worker, so multi-worker deployments need sticky routing.
    """

    def __init__(self, runtime: ScriptRuntime) -> None:
        self._runtime = runtime
        self._executors: dict[str, CallExecutor] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._executors)

    def __contains__(self, call_sid: object) -> bool:
        return call_sid in self._executors

    def get(self, call_sid: str) -> CallExecutor | None:
        return self._executors.get(call_sid)

    async def get_or_create(self, request: CallRequest) -> CallExecutor:
        """Return the executor for the request's call, creating it on first sight."""

        call_sid = request.call_sid
        executor = self._executors.get(call_sid)
        if executor is not None:
            self._log_resume(executor)
            return executor

        # Twilio can retry a webhook while the first script fetch is pending;
        # only one executor may be created per call.
        lock = self._locks.setdefault(call_sid, asyncio.Lock())
        try:
            async with lock:
                executor = self._executors.get(call_sid)
                if executor is not None:
                    self._log_resume(executor)
                    return executor

                executor = await CallExecutor.create(request, self._runtime)
                self._executors[call_sid] = executor
                LOGGER.info("Created call executor for %s (%d active)", call_sid, len(self._executors))
                return executor
        finally:
            # A failed creation leaves nothing to guard; waiters keep their
            # reference to the lock and retry under it.
            if call_sid not in self._executors and not lock.locked():
                self._locks.pop(call_sid, None)

    def remove(self, request: CallRequest) -> bool:
        """Forget a call once Twilio reports it completed.

        Returns False when the call was never seen by this process.
        """

        if not request.is_completed:
            raise InvalidCallStatusError(
                f'Expected call status "{COMPLETED_CALL_STATUS}", got "{request.call_status}".'
            )

        call_sid = request.call_sid
        self._locks.pop(call_sid, None)
        executor = self._executors.get(call_sid)
        if executor is None:
            LOGGER.warning("Received status callback for unknown call %s", call_sid)
            return False

        if not executor.is_completed():
            LOGGER.warning("Removing call %s before its call script completed", call_sid)

        del self._executors[call_sid]
        LOGGER.info("Removed call executor for %s (%d active)", call_sid, len(self._executors))
        return True

    @staticmethod
    def _log_resume(executor: CallExecutor) -> None:
        if executor.is_paused():
            LOGGER.debug("Resuming paused call %s", executor.session.call_sid)
        else:
            LOGGER.warning("Received webhook for call %s, which is not paused", executor.session.call_sid)
