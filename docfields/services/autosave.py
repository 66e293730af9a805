"""Debounced autosave of field values.

Editors emit a value on every keystroke. ``AutosaveQueue`` keeps one pending
write per (document, field): a newer edit cancels the pending one and takes
its place, and a key never has more than one write in flight. Writes for
different keys run independently.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker

from docfields.config import settings
from docfields.database.base import async_session_maker
from docfields.services.field_facade import FieldFacade
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)

WriteKey = Tuple[UUID, UUID]
WriteFn = Callable[[UUID, UUID, Optional[str], Any], Awaitable[Any]]


@dataclass
class PendingWrite:
    value: Optional[str]
    value_raw: Any
    task: "asyncio.Task[Any]"


def session_writer(session_factory: Optional[async_sessionmaker] = None) -> WriteFn:
    """Build a write function that upserts each value in its own session.

    A session must not be shared between concurrent writes, so every write
    opens a fresh one.
    """
    factory = session_factory or async_session_maker

    async def write(
        document_id: UUID, template_field_id: UUID, value: Optional[str], value_raw: Any = None
    ) -> Any:
        async with factory() as session:
            facade = FieldFacade(session, session_factory=factory)
            return await facade.upsert_value(document_id, template_field_id, value, value_raw)

    return write


class AutosaveQueue:
    """Per-key debounce with cancel-and-replace and one in-flight write per key."""

    def __init__(self, write: WriteFn, delay: Optional[float] = None):
        """Initialize the queue.

        Args:
            write: Coroutine function performing the upsert
            delay: Seconds to wait for further edits before writing
        """
        self._write = write
        self.delay = settings.autosave_delay_seconds if delay is None else delay
        self._pending: Dict[WriteKey, PendingWrite] = {}
        self._in_flight: Dict[WriteKey, "asyncio.Task[Any]"] = {}
        self._locks: Dict[WriteKey, asyncio.Lock] = {}
        # Writes holding or waiting on each lock
        self._lock_users: Dict[WriteKey, int] = {}

    def submit(
        self,
        document_id: UUID,
        template_field_id: UUID,
        value: Optional[str],
        value_raw: Any = None,
    ) -> "asyncio.Task[Any]":
        """Schedule a value write, replacing any write still waiting for this key."""
        key = (document_id, template_field_id)
        previous = self._pending.pop(key, None)
        if previous is not None:
            previous.task.cancel()

        task = asyncio.create_task(self._delayed_write(key, value, value_raw))
        self._pending[key] = PendingWrite(value=value, value_raw=value_raw, task=task)
        return task

    def pending_keys(self) -> List[WriteKey]:
        return list(self._pending.keys())

    def pending_count(self) -> int:
        return len(self._pending)

    async def flush(self) -> List[BaseException]:
        """Write every pending value now and wait for all writes to finish.

        Returns:
            Exceptions raised by failed writes (already logged)
        """
        tasks = list(self._in_flight.values())
        for key, pending in list(self._pending.items()):
            pending.task.cancel()
            self._pending.pop(key, None)
            # Queues behind any write already holding this key's lock
            flush_task = asyncio.create_task(
                self._locked_write(key, pending.value, pending.value_raw)
            )
            self._in_flight[key] = flush_task
            tasks.append(flush_task)

        if not tasks:
            return []
        results = await asyncio.gather(*tasks, return_exceptions=True)
        return [
            r for r in results
            if isinstance(r, BaseException) and not isinstance(r, asyncio.CancelledError)
        ]

    async def _delayed_write(self, key: WriteKey, value: Optional[str], value_raw: Any) -> Any:
        await asyncio.sleep(self.delay)

        # Past this point the write is no longer replaceable
        current = self._pending.get(key)
        if current is not None and current.task is asyncio.current_task():
            del self._pending[key]
        self._in_flight[key] = asyncio.current_task()
        return await self._locked_write(key, value, value_raw)

    async def _locked_write(self, key: WriteKey, value: Optional[str], value_raw: Any) -> Any:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                return await self._write(key[0], key[1], value, value_raw)
        except Exception:
            LOGGER.error(
                f"Autosave failed: document_id={key[0]}, template_field_id={key[1]}",
                exc_info=True,
            )
            raise
        finally:
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]
