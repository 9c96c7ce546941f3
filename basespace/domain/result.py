from dataclasses import dataclass
from typing import Generic, List, Sequence, TypeVar, Union

from basespace.domain.exceptions import BaseSpaceError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    error: BaseSpaceError

    def unwrap(self):
        """Raises the carried error, for callers that prefer exceptions."""
        raise self.error


Result = Union[Success[T], Failure]


def collect_in_order(results: Sequence[Result[T]]) -> Result[List[T]]:
    """
    Scans ``results`` by index and returns all values, or the first failure.

    The scan order is the sequence order, never completion order, so the
    reported failure is always the lowest-indexed one.
    """
    values: List[T] = []
    for result in results:
        if isinstance(result, Failure):
            return result
        values.append(result.value)
    return Success(values)
