# app/core/result.py
"""
Tiny tagged result type used by the route strategies.

A strategy returns Ok(value) when it produced a route and Err(error)
when its own failure condition was met, so the composer can walk an
ordered list of strategies without nesting try/except blocks.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: Exception


Result = Union[Ok[T], Err]
