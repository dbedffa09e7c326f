"""Single in-flight generation guard with lock-protected transitions."""

from __future__ import annotations

import asyncio
from enum import Enum

from .exceptions import GenerationInProgressError


class GenerationState(str, Enum):
    """Lifecycle of the one generation the pipeline may run at a time."""

    IDLE = "IDLE"
    GENERATING = "GENERATING"


class GenerationGate:
    """Admit one submission at a time."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._state = GenerationState.IDLE

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state == GenerationState.GENERATING

    async def try_begin(self) -> bool:
        """Enter GENERATING only when idle; returns whether this caller got in."""
        async with self._lock:
            if self._state != GenerationState.IDLE:
                return False
            self._state = GenerationState.GENERATING
            return True

    async def begin(self) -> None:
        """Enter GENERATING or raise GenerationInProgressError."""
        if not await self.try_begin():
            raise GenerationInProgressError()

    async def finish(self) -> None:
        """Return to IDLE."""
        async with self._lock:
            self._state = GenerationState.IDLE
