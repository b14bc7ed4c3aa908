"""
Submit-then-poll loop for a single code run.

Idle -> Submitted -> Polling -> Completed | TimedOut | Failed

The policy (interval, attempt ceiling, terminal predicate) and the sleep
function are injected so tests can drive the loop without real timers.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import httpx

from errors import SubmissionTimeoutError, UpstreamError
from judge0 import ExecutionResult

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Timed out waiting for execution result"


class PollState(str, Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


def status_is_terminal(result: ExecutionResult) -> bool:
    return result.is_terminal


@dataclass(frozen=True)
class PollPolicy:
    interval: float
    max_attempts: int
    is_terminal: Callable[[ExecutionResult], bool] = status_is_terminal


RUN_POLICY = PollPolicy(interval=0.5, max_attempts=40)
INTERACTIVE_POLICY = PollPolicy(interval=0.2, max_attempts=40)
CLI_POLICY = PollPolicy(interval=0.2, max_attempts=100)


class ExecutionBackend(Protocol):
    async def submit(self, source_code: str, language_id: int, stdin: str = "") -> str: ...

    async def fetch_result(self, token: str) -> ExecutionResult: ...


def display_output(result: ExecutionResult | None) -> str:
    """What the output panel shows: the first non-empty of stdout, compile output, stderr, message."""
    if result is None:
        return "No output"
    return result.stdout or result.compile_output or result.stderr or result.message or "No output"


@dataclass
class PollOutcome:
    state: PollState
    token: str | None = None
    result: ExecutionResult | None = None
    error: str | None = None
    attempts: int = 0

    @property
    def output(self) -> str:
        return display_output(self.result)

    def raise_for_state(self) -> ExecutionResult:
        if self.state is PollState.TIMED_OUT:
            raise SubmissionTimeoutError(self.error or TIMEOUT_MESSAGE)
        if self.state is not PollState.COMPLETED or self.result is None:
            raise UpstreamError(self.error or "Run failed")
        return self.result


class SubmissionPoller:
    def __init__(
        self,
        backend: ExecutionBackend,
        policy: PollPolicy = RUN_POLICY,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.backend = backend
        self.policy = policy
        self.sleep = sleep
        self.state = PollState.IDLE

    @property
    def busy(self) -> bool:
        return self.state in (PollState.SUBMITTED, PollState.POLLING)

    async def run(self, source_code: str, language_id: int, stdin: str = "") -> PollOutcome:
        if self.busy:
            raise RuntimeError("A run is already in progress")

        self.state = PollState.SUBMITTED
        try:
            return await self._run(source_code, language_id, stdin)
        finally:
            if self.busy:
                self.state = PollState.FAILED

    async def _run(self, source_code: str, language_id: int, stdin: str) -> PollOutcome:
        try:
            token = await self.backend.submit(source_code, language_id, stdin)
        except (UpstreamError, httpx.HTTPError) as e:
            logger.error("Submission failed: %s", e)
            self.state = PollState.FAILED
            return PollOutcome(PollState.FAILED, error=str(e))

        self.state = PollState.POLLING
        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                result = await self.backend.fetch_result(token)
            except (UpstreamError, httpx.HTTPError) as e:
                # a single failed poll is not fatal; the next attempt may succeed
                logger.debug("Poll %d for %s failed: %s", attempt, token, e)
            else:
                if self.policy.is_terminal(result):
                    self.state = PollState.COMPLETED
                    return PollOutcome(PollState.COMPLETED, token=token, result=result, attempts=attempt)

            if attempt < self.policy.max_attempts:
                await self.sleep(self.policy.interval)

        logger.warning("Gave up on %s after %d attempts", token, self.policy.max_attempts)
        self.state = PollState.TIMED_OUT
        return PollOutcome(
            PollState.TIMED_OUT,
            token=token,
            error=TIMEOUT_MESSAGE,
            attempts=self.policy.max_attempts,
        )
