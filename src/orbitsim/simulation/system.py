"""
Primary/secondary pairing.

An ``OrbitalSystem`` is one primary plus the ordered secondaries that feel
its gravity and atmosphere.  Systems never interact with each other.
"""

from dataclasses import dataclass, field
from typing import Iterator, List


@dataclass
class OrbitalSystem:
    """
    Attributes
    ----------
    primary : int
        Handle of the primary body.
    secondaries : list of int
        Handles of the bound secondaries, in creation order.
    """
    primary: int
    secondaries: List[int] = field(default_factory=list)

    def add_secondary(self, handle: int) -> None:
        if handle == self.primary:
            raise ValueError("A primary cannot be its own secondary")
        if handle not in self.secondaries:
            self.secondaries.append(handle)

    def remove_secondary(self, handle: int) -> bool:
        try:
            self.secondaries.remove(handle)
        except ValueError:
            return False
        return True

    def handles(self) -> List[int]:
        """Primary first, then secondaries; the update order within a tick."""
        return [self.primary] + list(self.secondaries)

    def __contains__(self, handle: int) -> bool:
        return handle == self.primary or handle in self.secondaries

    def __iter__(self) -> Iterator[int]:
        return iter(self.handles())

    def __len__(self) -> int:
        return 1 + len(self.secondaries)
