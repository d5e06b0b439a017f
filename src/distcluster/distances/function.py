from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable


@runtime_checkable
class Clusterable(Protocol):
    """Protocol for elements that can be clustered.

    The algorithms only ever ask an element for its distance to another
    element of the same type. Elements are also compared by value and stored
    in sets, so implementations must provide ``__eq__`` and ``__hash__``
    (a frozen dataclass gives both for free).
    """

    def distance_to(self, other: Any) -> float:
        """Compute the distance from this element to `other`.

        Args:
            other: Element of the same type

        Returns:
            Non-negative distance. Must be deterministic for identical
            inputs and should be symmetric.
        """
        ...


T = TypeVar("T", bound=Clusterable)


def require_other(other: Any) -> None:
    """Reject a missing comparison target before computing a distance."""
    if other is None:
        raise ValueError("Cannot compute distance to None.")
