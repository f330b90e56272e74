"""Bounded concurrent update processing with per-user ordering."""

import asyncio
from typing import Any, Awaitable, Dict, Optional

from telegram.ext import BaseUpdateProcessor

from common.logging_config import get_logger

logger = get_logger(__name__)


def update_user_id(update: object) -> Optional[int]:
    user = getattr(update, "effective_user", None)
    if user is None:
        return None
    return user.id


class PerUserUpdateProcessor(BaseUpdateProcessor):
    """
    Runs up to max_concurrent_updates updates at once, but never two
    updates of the same user at the same time.

    Updates of one user run in arrival order. Updates without a user run
    unserialized.
    """

    def __init__(self, max_concurrent_updates: int):
        super().__init__(max_concurrent_updates)
        self._locks: Dict[int, asyncio.Lock] = {}
        self._holders: Dict[int, int] = {}

    async def do_process_update(self, update: object, coroutine: Awaitable[Any]) -> None:
        user_id = update_user_id(update)
        if user_id is None:
            await coroutine
            return

        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._holders[user_id] = self._holders.get(user_id, 0) + 1
        try:
            async with lock:
                await coroutine
        finally:
            self._holders[user_id] -= 1
            if self._holders[user_id] == 0:
                del self._holders[user_id]
                del self._locks[user_id]

    @property
    def active_users(self) -> int:
        return len(self._locks)

    async def initialize(self) -> None:
        logger.debug(f"Update processor ready [max_concurrent_updates={self.max_concurrent_updates}]")

    async def shutdown(self) -> None:
        if self._locks:
            logger.info(f"Update processor shutting down with {len(self._locks)} user(s) in flight")
