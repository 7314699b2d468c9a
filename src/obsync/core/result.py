"""Tagged success/failure values for expected outcomes.

Public engine operations return ``Ok(value)`` or ``Err(error)`` instead of
raising, so a host never has to guard a pull or push with ``try``.
Exceptions stay reserved for programmer errors and fatal configuration.

Usage::

    match await coordinator.push():
        case Ok(report):
            print(report.message)
        case Err(error):
            print(f"push failed: {error.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying *value*."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome carrying *error*."""

    error: E

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]


def map_result(result: Result, func: Callable[[T], U]) -> Result:
    """Apply *func* to the value of an ``Ok``; pass an ``Err`` through."""
    match result:
        case Ok(value):
            return Ok(func(value))
        case _:
            return result


def unwrap_or(result: Result, default: U) -> T | U:
    """Return the value of an ``Ok`` or *default* for an ``Err``."""
    match result:
        case Ok(value):
            return value
        case _:
            return default
