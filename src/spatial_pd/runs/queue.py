"""Queue of pending simulation runs.

Each queued run carries the configuration it will be set up with and the
progress a driver last observed for it. Display of the queue is left to
whoever renders it.
"""
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List

from spatial_pd.world.config import WorldConfig


@dataclass
class RunInfo:
    """One queued run and its latest progress."""
    config: WorldConfig
    id: int
    cur_epoch: int = 0
    num_coop: int = 0
    num_defect: int = 0
    started: bool = False

    @property
    def done(self) -> bool:
        return self.started and self.cur_epoch >= self.config.E

    def as_row(self) -> dict:
        return {
            'id': self.id,
            'r': self.config.r,
            'u': self.config.u,
            'N': self.config.N,
            'E': self.config.E,
            'epoch': self.cur_epoch,
            'num_coop': self.num_coop,
            'num_defect': self.num_defect,
        }


class RunQueue:
    """FIFO of `RunInfo` records.

    Run ids count every run ever queued, so they stay unique after runs are
    removed from the front.
    """

    def __init__(self):
        self._runs: Deque[RunInfo] = deque()
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._runs)

    def __iter__(self) -> Iterator[RunInfo]:
        return iter(self._runs)

    def is_empty(self) -> bool:
        return not self._runs

    def runs_remaining(self) -> int:
        return len(self._runs)

    def add_run(self, config: WorldConfig) -> RunInfo:
        run = RunInfo(config=config, id=self._next_id)
        self._next_id += 1
        self._runs.append(run)
        return run

    def add_runs(self, config: WorldConfig, num_runs: int) -> List[RunInfo]:
        """Queue `num_runs` runs sharing one configuration."""
        assert num_runs >= 0, "num_runs must be non-negative"
        return [self.add_run(config) for _ in range(num_runs)]

    def front_run(self) -> RunInfo:
        assert not self.is_empty(), "Queue is empty! Cannot read front run."
        return self._runs[0]

    def remove_run(self) -> RunInfo:
        assert not self.is_empty(), "Queue is empty! Cannot remove!"
        return self._runs.popleft()
