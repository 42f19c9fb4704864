"""Best-effort step harness.

Each side effect that follows a committed activation runs through
``run_step``/``run_async_step``. The harness turns any exception into a
failed ``StepResult``, runs the rollback hook so a broken unit of work
cannot leak into the next step, and never re-raises.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class StepError:
    """Why a best-effort step failed."""
    step: str
    type: str
    message: str

    @classmethod
    def from_exception(cls, step: str, exc: BaseException) -> "StepError":
        return cls(step=step, type=exc.__class__.__name__, message=str(exc))


@dataclass
class StepResult(Generic[T]):
    """Outcome of one orchestrator step."""
    name: str
    ok: bool
    value: Optional[T] = None
    error: Optional[StepError] = None
    skipped: bool = False
    reason: Optional[str] = None

    @classmethod
    def success(cls, name: str, value: Optional[T] = None) -> "StepResult[T]":
        return cls(name=name, ok=True, value=value)

    @classmethod
    def failure(cls, name: str, error: StepError) -> "StepResult[T]":
        return cls(name=name, ok=False, error=error)

    @classmethod
    def skip(cls, name: str, reason: str) -> "StepResult[T]":
        return cls(name=name, ok=True, skipped=True, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "ok": self.ok}
        if self.skipped:
            data["skipped"] = True
            data["reason"] = self.reason
        if self.error:
            data["error"] = {"type": self.error.type, "message": self.error.message}
        return data


def _record_failure(
    name: str,
    exc: Exception,
    on_error: Optional[Callable[[], None]],
) -> StepResult:
    logger.warning("Step %s failed: %s: %s", name, exc.__class__.__name__, exc)
    if on_error is not None:
        try:
            on_error()
        except Exception as rollback_exc:
            logger.error("Rollback after step %s failed: %s", name, rollback_exc)
    return StepResult.failure(name, StepError.from_exception(name, exc))


def run_step(
    name: str,
    fn: Callable[..., T],
    *args,
    on_error: Optional[Callable[[], None]] = None,
    **kwargs,
) -> StepResult[T]:
    """Run a synchronous step and capture its outcome."""
    try:
        value = fn(*args, **kwargs)
    except Exception as e:
        return _record_failure(name, e, on_error)

    logger.info("Step %s succeeded", name)
    return StepResult.success(name, value)


async def run_async_step(
    name: str,
    fn: Callable[..., Awaitable[T]],
    *args,
    on_error: Optional[Callable[[], None]] = None,
    **kwargs,
) -> StepResult[T]:
    """Run a coroutine step and capture its outcome."""
    try:
        value = await fn(*args, **kwargs)
    except Exception as e:
        return _record_failure(name, e, on_error)

    logger.info("Step %s succeeded", name)
    return StepResult.success(name, value)
