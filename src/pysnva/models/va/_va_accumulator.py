"""Running total for lower-bound contributions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class LowerBoundAccumulator:
    """Caller-owned sum of lower-bound contributions.

    Attributes
    ----------
    total : scalar
        Sum of everything added so far. Stays a tensor when tensors are
        added, so it can be differentiated.
    contributions : list of (str, scalar)
        Labelled record of each addition, in order.
    """

    total: Any = 0.0
    contributions: list[tuple[str, Any]] = field(default_factory=list)

    def add(self, value, label: str = "") -> LowerBoundAccumulator:
        self.total = self.total + value
        self.contributions.append((label, value))
        return self

    def __iadd__(self, value) -> LowerBoundAccumulator:
        return self.add(value)

    def __float__(self) -> float:
        return float(self.total)
