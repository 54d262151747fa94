"""Correlate OSC replies with the requests awaiting them.

AbletonOSC answers a getter on the same address it was asked on, and it
answers to a fixed port rather than to the sender's origin. The only
correlation key available is therefore the address itself. The registry
keeps at most one :class:`PendingWait` per address; requests for an address
that is already awaited queue behind it (FIFO) and are sent only once the
earlier wait has settled. A reply can thus resolve only the one request
that is actually outstanding.

Known hazard: a reply that arrives after its own wait timed out is
indistinguishable from a reply to the next queued request on the same
address and will resolve that one.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from time import monotonic
from typing import Callable, Dict, Iterator, Optional, Sequence, Tuple

from .errors import OscError, ReplyTimeoutError

logger = logging.getLogger("ableton_bridge.osc.registry")

SendFn = Callable[..., None]


class WaitConflictError(OscError, RuntimeError):
    """Raised by :meth:`CorrelationRegistry.expect` when an address is already awaited."""


@dataclass(eq=False, slots=True)
class PendingWait:
    address: str
    timeout: float
    future: "asyncio.Future[Tuple[object, ...]]"
    created_at: float = field(default_factory=monotonic)
    timer: Optional[asyncio.TimerHandle] = None


class CorrelationRegistry:
    """Table from address to the single in-flight wait for that address."""

    def __init__(self, *, timeout: float, diagnostics: str = "") -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = float(timeout)
        self.diagnostics = diagnostics
        self._pending: Dict[str, PendingWait] = {}
        self._queues: Dict[str, asyncio.Lock] = {}
        self._queued: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, address: object) -> bool:
        return address in self._pending

    def __iter__(self) -> Iterator[PendingWait]:
        return iter(list(self._pending.values()))

    def expect(self, address: str, timeout: Optional[float] = None) -> PendingWait:
        """Register interest in the next datagram on ``address``."""

        if address in self._pending:
            raise WaitConflictError(f"a reply on {address} is already awaited")
        loop = asyncio.get_running_loop()
        delay = self.timeout if timeout is None else float(timeout)
        wait = PendingWait(address=address, timeout=delay, future=loop.create_future())
        wait.timer = loop.call_later(delay, self._expire, wait)
        self._pending[address] = wait
        logger.debug("wait.register", extra={"address": address, "timeout_s": delay})
        return wait

    def resolve(self, address: str, args: Sequence[object]) -> bool:
        """Deliver an inbound message. Returns ``False`` when nobody waits on it."""

        wait = self._pending.pop(address, None)
        if wait is None:
            return False
        self._settle(wait)
        if not wait.future.done():
            wait.future.set_result(tuple(args))
        logger.debug(
            "wait.resolve",
            extra={"address": address, "elapsed_s": monotonic() - wait.created_at},
        )
        return True

    def cancel(self, wait: PendingWait, exc: Optional[BaseException] = None) -> None:
        """Withdraw ``wait``. No-op when it already fired or was cancelled."""

        if self._pending.get(wait.address) is wait:
            del self._pending[wait.address]
        self._settle(wait)
        if wait.future.done():
            return
        if exc is None:
            wait.future.cancel()
        else:
            wait.future.set_exception(exc)

    def reject_all(self, factory: Callable[[str], BaseException]) -> int:
        """Reject every pending wait with ``factory(address)``; return how many."""

        waits = list(self._pending.values())
        for wait in waits:
            self.cancel(wait, factory(wait.address))
        if waits:
            logger.info("wait.reject_all", extra={"count": len(waits)})
        return len(waits)

    async def request(
        self,
        address: str,
        args: Sequence[object],
        *,
        send: SendFn,
        timeout: Optional[float] = None,
    ) -> Tuple[object, ...]:
        """Send ``address`` with ``args`` and return the reply's arguments.

        The wait is registered before sending so a fast reply cannot slip
        past it.
        """

        queue = self._queues.setdefault(address, asyncio.Lock())
        self._queued[address] = self._queued.get(address, 0) + 1
        try:
            async with queue:
                wait = self.expect(address, timeout)
                try:
                    send(address, *args)
                    return await wait.future
                finally:
                    self.cancel(wait)
        finally:
            remaining = self._queued[address] - 1
            if remaining:
                self._queued[address] = remaining
            else:
                del self._queued[address]
                del self._queues[address]

    def _settle(self, wait: PendingWait) -> None:
        if wait.timer is not None:
            wait.timer.cancel()
            wait.timer = None

    def _expire(self, wait: PendingWait) -> None:
        if self._pending.get(wait.address) is not wait:
            return
        del self._pending[wait.address]
        wait.timer = None
        logger.warning(
            "wait.timeout",
            extra={"address": wait.address, "timeout_s": wait.timeout},
        )
        if not wait.future.done():
            wait.future.set_exception(
                ReplyTimeoutError(wait.address, wait.timeout, self.diagnostics)
            )


__all__ = ["CorrelationRegistry", "PendingWait", "WaitConflictError"]
