"""Tests for the single in-flight generation gate."""

from __future__ import annotations

import asyncio
import unittest

from ai_playground.exceptions import GenerationInProgressError
from ai_playground.state import GenerationGate, GenerationState


class GenerationGateTests(unittest.IsolatedAsyncioTestCase):
    """Validate lock-protected IDLE/GENERATING transitions."""

    async def test_begin_only_when_idle(self) -> None:
        gate = GenerationGate()
        self.assertEqual(gate.state, GenerationState.IDLE)
        self.assertTrue(await gate.try_begin())
        self.assertTrue(gate.is_busy)
        self.assertFalse(await gate.try_begin())
        await gate.finish()
        self.assertEqual(gate.state, GenerationState.IDLE)
        self.assertTrue(await gate.try_begin())

    async def test_begin_raises_while_generating(self) -> None:
        gate = GenerationGate()
        await gate.begin()
        with self.assertRaises(GenerationInProgressError):
            await gate.begin()

    async def test_lock_admits_exactly_one_concurrent_caller(self) -> None:
        gate = GenerationGate()

        async def try_enter() -> bool:
            await asyncio.sleep(0)
            return await gate.try_begin()

        results = await asyncio.gather(*(try_enter() for _ in range(10)))
        self.assertEqual(sum(1 for result in results if result), 1)
        self.assertEqual(gate.state, GenerationState.GENERATING)


if __name__ == "__main__":
    unittest.main()
