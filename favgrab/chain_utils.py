"""Ordered fallback chains: try each strategy until one succeeds."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    ok: bool
    value: Any = None
    error: str | None = None
    stage: str = ""

    @classmethod
    def success(cls, value, stage: str = "") -> "StepResult":
        return cls(ok=True, value=value, stage=stage)

    @classmethod
    def failure(cls, error: str, stage: str = "") -> "StepResult":
        return cls(ok=False, error=error, stage=stage)

    def describe(self) -> str:
        return f"{self.stage}: {self.error}" if self.stage else str(self.error)


@dataclass
class ChainOutcome:
    """First successful step (if any) plus every failure seen before it."""

    result: StepResult | None
    trail: list[StepResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.result is not None and self.result.ok

    @property
    def messages(self) -> list[str]:
        return [step.describe() for step in self.trail]


def run_chain(strategies: list[tuple[str, Callable[[], StepResult]]]) -> ChainOutcome:
    trail = []
    for stage, strategy in strategies:
        result = strategy()
        if not result.stage:
            result = StepResult(result.ok, result.value, result.error, stage)
        if result.ok:
            logger.info("[%s] succeeded", stage)
            return ChainOutcome(result=result, trail=trail)
        logger.info("[%s] failed: %s", stage, result.error)
        trail.append(result)
    return ChainOutcome(result=None, trail=trail)
