"""Tagged outcomes for directory lookups.

A lookup either found the entity, learned that it does not exist (404), or
failed to get an answer at all. Callers branch on the tag instead of catching
HTTP exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from app.directory.errors import DirectoryTransportError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Found(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Absent:
    pass


@dataclass(frozen=True, slots=True)
class TransportFailure:
    error: DirectoryTransportError

    @property
    def detail(self) -> str:
        return str(self.error)


LookupResult = Union[Found[T], Absent, TransportFailure]


def unwrap_lookup(result: LookupResult[T]) -> T | None:
    if isinstance(result, Found):
        return result.value
    if isinstance(result, Absent):
        return None
    raise result.error
