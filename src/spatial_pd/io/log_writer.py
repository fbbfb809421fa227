import logging
import os
import numpy as np

logger = logging.getLogger(__name__)


def snapshot_arrays(world):
    """Copy of the population state of `world` keyed by field name."""
    return {
        'x': np.array(world.x),
        'y': np.array(world.y),
        'coop': np.array(world.coop),
        'fitness': np.array(world.fitness),
    }


class LogWriter:
    """Per-epoch population snapshots as binary .npz files.

    Usage:
        with LogWriter(output_dir) as lw:
            lw.append(world.get_epoch(), snapshot_arrays(world))

    The writer creates files named `epoch_{t:06d}.npz` and an index `index.txt`
    with one `<epoch>,<file>` line per snapshot.
    """

    def __init__(self, out_dir, prefix='epoch'):
        self.out_dir = out_dir
        self.prefix = prefix
        os.makedirs(self.out_dir, exist_ok=True)
        self.index_path = os.path.join(self.out_dir, 'index.txt')
        # line-buffered so the index survives an interrupted batch
        self._index_f = open(self.index_path, 'a', buffering=1)
        self.written = 0

    def append(self, t, arrays_dict):
        """Write arrays_dict to a single `.npz` for epoch `t`.

        Returns True on success. Write failures are logged and skipped so a
        full disk never stops a simulation.
        """
        fn = os.path.join(self.out_dir, f'{self.prefix}_{t:06d}.npz')
        try:
            np.savez(fn, **arrays_dict)
            self._index_f.write(f'{t},{os.path.basename(fn)}\n')
        except (OSError, ValueError) as e:
            logger.exception('snapshot for epoch %d not written to %s (%d written so far): %s',
                             t, self.out_dir, self.written, e)
            return False
        self.written += 1
        return True

    def close(self):
        if not self._index_f.closed:
            self._index_f.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
