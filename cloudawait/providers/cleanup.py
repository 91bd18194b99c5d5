"""Best-effort teardown with a structured partial-failure report.

Every step runs regardless of earlier failures. A step whose target does not
exist (``ResourceNotFound``) is recorded as skipped; any other exception is
recorded as failed and logged.
"""

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

OK = "ok"
SKIPPED = "skipped"
FAILED = "failed"


class ResourceNotFound(Exception):
    """The resource a teardown step targets does not exist."""


@dataclass
class StepResult:
    step: str
    status: str
    error: str | None = None


@dataclass
class CleanupReport:
    """Outcome of every teardown step, in execution order."""

    results: list[StepResult] = field(default_factory=list)

    @property
    def failed(self) -> list[StepResult]:
        return [r for r in self.results if r.status == FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        if self.ok:
            return f"Cleanup complete ({len(self.results)} step(s))."
        names = ", ".join(r.step for r in self.failed)
        return f"Failed {len(self.failed)} of {len(self.results)} cleanup step(s): {names}"


async def run_step(report: CleanupReport, step: str, action):
    """Await ``action()`` and record its outcome in *report* under *step*."""
    try:
        await action()
    except ResourceNotFound as e:
        logger.info(f"  {step}: nothing to do ({e})")
        report.results.append(StepResult(step, SKIPPED, str(e)))
    except Exception as e:
        logger.error(f"  ERROR in {step}: {e}")
        report.results.append(StepResult(step, FAILED, str(e)))
    else:
        report.results.append(StepResult(step, OK))
