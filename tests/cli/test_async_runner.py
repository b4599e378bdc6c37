"""Tests for the unified async runner module."""

import asyncio

import pytest

from tollgate.cli.async_runner import run_async


class TestRunAsync:
    """Tests for run_async function."""

    def test_run_async_executes_coroutine(self) -> None:
        """run_async executes a coroutine and returns result."""

        async def simple_coro() -> str:
            return "success"

        assert run_async(simple_coro()) == "success"

    def test_run_async_propagates_exceptions(self) -> None:
        """run_async propagates exceptions from coroutine."""

        async def failing_coro() -> None:
            raise ValueError("test error")

        with pytest.raises(ValueError, match="test error"):
            run_async(failing_coro())

    def test_run_async_handles_async_operations(self) -> None:
        """run_async properly handles async sleep operations."""

        async def async_sleep_coro() -> str:
            await asyncio.sleep(0.01)
            return "completed"

        assert run_async(async_sleep_coro()) == "completed"
