"""Unit tests for the bounded confirmation poller."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from agentmart.application.shared.confirmation import await_confirmation
from agentmart.domain.errors import LedgerUnavailableError
from agentmart.domain.payments import ConfirmationState, TxState, TxStatus
from tests.fixtures import CONFIRMED, PENDING


class ScriptedStatus:
    """Status query answering from a script and counting calls."""

    def __init__(self, *observations) -> None:
        self.observations = list(observations)
        self.calls = 0

    async def __call__(self, reference: str) -> Optional[TxStatus]:
        self.calls += 1
        observation = (
            self.observations.pop(0)
            if len(self.observations) > 1
            else self.observations[0]
        )
        if isinstance(observation, Exception):
            raise observation
        return observation


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


class TestAwaitConfirmation:
    async def test_confirmed_on_first_poll_never_sleeps(self, sleep) -> None:
        status = ScriptedStatus(CONFIRMED)

        result = await await_confirmation(status, "ref", 30, 1.0, sleep=sleep)

        assert result.state is ConfirmationState.CONFIRMED
        assert result.attempts == 1
        assert status.calls == 1
        assert sleep.delays == []

    async def test_no_sleep_after_confirmation(self, sleep) -> None:
        status = ScriptedStatus(None, PENDING, CONFIRMED, PENDING)

        result = await await_confirmation(status, "ref", 30, 1.0, sleep=sleep)

        assert result.is_confirmed
        assert result.attempts == 3
        assert status.calls == 3
        # One sleep between each pair of polls, none after the confirming one
        assert sleep.delays == [1.0, 1.0]

    async def test_failed_returns_immediately(self, sleep) -> None:
        status = ScriptedStatus(
            PENDING, TxStatus(state=TxState.FAILED, error="InstructionError")
        )

        result = await await_confirmation(status, "ref", 30, 1.0, sleep=sleep)

        assert result.state is ConfirmationState.FAILED
        assert result.reason == "InstructionError"
        assert status.calls == 2

    @pytest.mark.parametrize("max_attempts", [1, 2, 5, 30])
    async def test_times_out_after_exactly_max_attempts(
        self, sleep, max_attempts: int
    ) -> None:
        status = ScriptedStatus(None)

        result = await await_confirmation(status, "ref", max_attempts, 1.0, sleep=sleep)

        assert result.state is ConfirmationState.TIMED_OUT
        assert result.attempts == max_attempts
        assert status.calls == max_attempts
        assert len(sleep.delays) == max_attempts - 1

    async def test_unreachable_ledger_counts_as_pending(self, sleep) -> None:
        status = ScriptedStatus(LedgerUnavailableError("timeout"), CONFIRMED)

        result = await await_confirmation(status, "ref", 3, 1.0, sleep=sleep)

        assert result.is_confirmed
        assert status.calls == 2

    async def test_unreachable_ledger_on_final_attempt_propagates(self, sleep) -> None:
        status = ScriptedStatus(PENDING, LedgerUnavailableError("timeout"))

        with pytest.raises(LedgerUnavailableError):
            await await_confirmation(status, "ref", 2, 1.0, sleep=sleep)

    async def test_deadline_stops_waiting_early(self, sleep) -> None:
        status = ScriptedStatus(PENDING)
        deadline = asyncio.get_running_loop().time() + 0.5

        result = await await_confirmation(
            status, "ref", 30, 1.0, deadline=deadline, sleep=sleep
        )

        assert result.state is ConfirmationState.TIMED_OUT
        assert result.attempts == 1
        assert sleep.delays == []

    async def test_rejects_non_positive_attempts(self) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            await await_confirmation(ScriptedStatus(CONFIRMED), "ref", 0, 1.0)

    async def test_cancellation_interrupts_the_wait(self) -> None:
        status = ScriptedStatus(PENDING)
        task = asyncio.create_task(await_confirmation(status, "ref", 30, 60.0))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert status.calls == 1
