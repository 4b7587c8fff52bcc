"""
Helpers for side effects that must never fail the caller.

Cache population, analytics and notifications run after the real work of a
job is done; a Redis hiccup there is logged and otherwise ignored.
"""

from typing import Any, Callable, Optional

from intervai.utils.logging import AppLogger, worker_logger


def best_effort(
    label: str,
    fn: Callable[..., Any],
    *args,
    logger: Optional[AppLogger] = None,
    **kwargs
) -> Any:
    """Call fn(*args, **kwargs); log and return None if it raises."""
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        (logger or worker_logger).warning(
            f"Best-effort step failed: {label}",
            error=str(e),
            error_type=type(e).__name__
        )
        return None

