"""
agents.py

Agent record handed out by the world for display and inspection.

Notes:
- The engine keeps its population as parallel arrays; `Agent` values are
  snapshots and editing one has no effect on the running world.
"""
from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class Agent:
    """One population member."""
    x: float
    y: float
    coop: bool
    fitness: float
    neighbors: Tuple[int, ...] = field(default_factory=tuple)

    @property
    def degree(self) -> int:
        return len(self.neighbors)
