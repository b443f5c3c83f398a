import functools
import inspect
import sys
import time
from collections.abc import Callable
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from typing import Final
from typing import ParamSpec
from typing import TypeVar

from loguru import logger

from nimbus.common.pure import pure

_LOG_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

_MAX_LOG_VALUE_REPR_LENGTH: Final[int] = 200

P = ParamSpec("P")
R = TypeVar("R")


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru to write to stderr at the given level.

    Only the outermost composition root (a service or script embedding nimbus)
    should call this; library code never touches sinks.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_LOG_FORMAT)


@pure
def truncate_for_log(value: Any) -> str:
    """Format a value for logging, truncating long reprs (command output can be huge)."""
    str_value = value if isinstance(value, str) else repr(value)
    if len(str_value) > _MAX_LOG_VALUE_REPR_LENGTH:
        return str_value[: _MAX_LOG_VALUE_REPR_LENGTH - 3] + "..."
    return str_value


def log_call(func: Callable[P, R]) -> Callable[P, R]:
    """Decorator that logs calls at debug level with their arguments bound as structured fields.

    Used on public entry points so every provision and terminate request is traceable.
    """
    func_name = getattr(func, "__name__", repr(func))
    signature = inspect.signature(func)

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        bound_args = signature.bind(*args, **kwargs)
        bound_args.apply_defaults()
        log_fields = {name: truncate_for_log(value) for name, value in bound_args.arguments.items()}
        logger.debug("Calling {}", func_name, **log_fields)

        start_time = time.monotonic()
        result = func(*args, **kwargs)
        elapsed = time.monotonic() - start_time
        logger.trace("Calling {} [done in {:.5f} sec]", func_name, elapsed, result=truncate_for_log(result))
        return result

    return wrapper


@contextmanager
def log_span(message: str, *args: Any, **context: Any) -> Iterator[None]:
    """Context manager that logs a debug message on entry and a trace message with timing on exit.

    On entry, emits logger.debug(message, *args).
    On exit, emits logger.trace(message + " [done in X.XXXXX sec]", *args, elapsed),
    or the same with "[failed after X.XXXXX sec]" before re-raising.

    Keyword arguments are passed to logger.contextualize so that all log messages
    within the span include the extra context fields (machine_id, tool, ...).
    """
    with logger.contextualize(**context):
        logger.debug(message, *args)
        start_time = time.monotonic()
        try:
            yield
        except BaseException:
            elapsed = time.monotonic() - start_time
            logger.trace(message + " [failed after {:.5f} sec]", *args, elapsed)
            raise
        else:
            elapsed = time.monotonic() - start_time
            logger.trace(message + " [done in {:.5f} sec]", *args, elapsed)
