"""Execution state tracker: polls an execution until it reaches a terminal state."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from .config import HcpOpsConfig
from .errors import CancelledOrTimedOut
from .models import ExecutionHandle, ExecutionRecord
from .utils.retry import backoff_intervals

if TYPE_CHECKING:
    from .gateway import WorkflowGateway

logger = logging.getLogger(__name__)


class ExecutionTracker:
    """Drives a created execution to a terminal state.

    Non-terminal observations are followed by a sleep that starts at
    ``poll_initial_interval`` and doubles up to ``poll_max_interval``. The
    interval is never reset within one wait. Transport errors abort the wait
    and are surfaced as raised by the gateway.
    """

    def __init__(
        self,
        gateway: "WorkflowGateway",
        config: Optional[HcpOpsConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        config = config or HcpOpsConfig()
        self._gateway = gateway
        self._initial = config.poll_initial_interval
        self._maximum = config.poll_max_interval
        self._sleep = sleep

    async def wait_for_completion(
        self, handle: ExecutionHandle, timeout: Optional[float] = None
    ) -> ExecutionRecord:
        """Poll ``handle`` until it is terminal and return the terminal record.

        Args:
            handle: Execution to track.
            timeout: Seconds to wait before giving up. ``None`` waits forever.

        Raises:
            CancelledOrTimedOut: The deadline expired. The remote execution
                keeps running.
            RemoteCallFailed: A read failed; the wait is not retried.
        """
        try:
            return await asyncio.wait_for(self._poll(handle), timeout)
        except CancelledOrTimedOut:
            raise
        except asyncio.TimeoutError as exc:
            logger.warning(
                f"Stopped waiting for execution {handle.execution_id} after {timeout}s"
            )
            raise CancelledOrTimedOut(
                f"waiting for execution {handle.execution_id}: deadline of {timeout}s exceeded"
            ) from exc

    async def _poll(self, handle: ExecutionHandle) -> ExecutionRecord:
        intervals = backoff_intervals(self._initial, self._maximum)
        polls = 0
        while True:
            record = await self._gateway.get_execution(handle)
            polls += 1
            if record.is_terminal:
                logger.info(
                    f"Execution {handle.execution_id} finished as {record.state.value} "
                    f"after {polls} poll(s)"
                )
                return record

            delay = next(intervals)
            logger.debug(
                f"Execution {handle.execution_id} is {record.state.value}; "
                f"polling again in {delay}s"
            )
            await self._sleep(delay)
