"""Apply-then-persist with a verbatim rollback when persistence fails."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from .errors import StorageFailure

logger = logging.getLogger(__name__)

S = TypeVar("S")
R = TypeVar("R")


async def commit_or_revert(
    snapshot: Callable[[], S],
    apply: Callable[[], R],
    persist: Callable[[], Awaitable[None]],
    restore: Callable[[S], None],
) -> R:
    """Capture state, mutate in memory, then persist.

    When ``persist`` raises :class:`StorageFailure` the captured state is
    handed back to ``restore`` unchanged and the failure is re-raised.
    """
    previous = snapshot()
    result = apply()
    try:
        await persist()
    except StorageFailure as exc:
        logger.warning("Persist failed, reverting in-memory state: %s", exc)
        restore(previous)
        raise
    return result


__all__ = ["commit_or_revert"]
