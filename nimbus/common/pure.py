from collections.abc import Callable
from typing import TypeVar

_F = TypeVar("_F", bound=Callable[..., object])


def pure(func: _F) -> _F:
    """Mark a function as pure (no side effects, no I/O).

    Advisory only: nothing is enforced at runtime. Functions marked this way
    return the same output for the same inputs and never touch a machine,
    the network, or module-level state.
    """
    return func
