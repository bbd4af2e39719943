# eldercare/services/remote.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from eldercare.services.results import LedgerError
from eldercare.stores.base import RejectReason, StoreRejected, StoreUnavailable

log = logging.getLogger(__name__)

T = TypeVar("T")

# Shielded calls that outlived their caller; kept referenced until they finish.
_in_flight: set[asyncio.Task] = set()


def _finish_in_background(task: asyncio.Task) -> None:
    _in_flight.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.warning("Detached ledger call failed: %r", exc)
    else:
        log.info("Detached ledger call completed after the caller gave up")


async def bounded(awaitable: Awaitable[T], timeout: float, *, shield: bool = False) -> T:
    """
    Await a store call with a time limit.

    With shield=True the call keeps running after a timeout or caller
    cancellation, so a commit is never cut off half way; the caller only
    learns that the outcome is unknown (StoreUnavailable) and may retry with
    the same idempotency key.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        if shield:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        return await asyncio.wait_for(task, timeout)
    except asyncio.TimeoutError as e:
        raise StoreUnavailable(f"ledger call timed out after {timeout}s") from e
    finally:
        if shield and not task.done():
            _in_flight.add(task)
            task.add_done_callback(_finish_in_background)


def rejection_error(e: StoreRejected) -> LedgerError:
    if e.reason == RejectReason.UNKNOWN_ACCOUNT:
        return LedgerError.NOT_AUTHENTICATED
    return LedgerError.INVALID_ARGUMENT
