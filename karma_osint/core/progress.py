"""Progress reporting for karma_osint.

A collection run announces each meaningful unit of work with a short,
human-readable label ("DNS lookup: example.com").  Reporters forward those
labels to an operator-visible sink.  Reporting is never required for
correctness: a failing sink is logged and ignored.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, Union

logger = logging.getLogger(__name__)

StepCallback = Callable[[str], Union[None, Awaitable[None]]]


class StepReporter(ABC):
    """Abstract base class for step reporters."""

    @abstractmethod
    async def step(self, message: str) -> None:
        """Report a step."""


class NullStepReporter(StepReporter):
    """Step reporter that does nothing (for silent operation)."""

    async def step(self, message: str) -> None:
        pass


class LoggingStepReporter(StepReporter):
    """Step reporter that logs every step."""

    def __init__(self, log_level: int = logging.INFO) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self.log_level = log_level

    async def step(self, message: str) -> None:
        self.logger.log(self.log_level, "Step: %s", message)


class RecordingStepReporter(StepReporter):
    """Step reporter that keeps every label in order."""

    def __init__(self) -> None:
        self.steps: List[str] = []

    async def step(self, message: str) -> None:
        self.steps.append(message)


class CallbackStepReporter(StepReporter):
    """Step reporter that forwards to a sync or async callback.

    Exceptions raised by the callback are logged and swallowed so that a
    broken sink cannot abort a collection run.
    """

    def __init__(self, callback: StepCallback) -> None:
        self.callback = callback
        self.errors = 0

    async def step(self, message: str) -> None:
        logger.debug("Step: %s", message)
        try:
            outcome: Any = self.callback(message)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            self.errors += 1
            logger.warning("Step callback failed for %r: %s", message, exc)


def get_step_reporter(
    on_step: Optional[Union[StepCallback, StepReporter]] = None,
) -> StepReporter:
    """Return a reporter for ``on_step``.

    Args:
        on_step: A callable, an existing reporter, or None.

    Returns:
        StepReporter instance
    """
    if on_step is None:
        return NullStepReporter()
    if isinstance(on_step, StepReporter):
        return on_step
    return CallbackStepReporter(on_step)
