"""
utils.py

Builder for periodic KD-trees on the unit torus, used by the neighbour graph.

The public helper:
- `safe_build_periodic_kdtree(points, boxsize=1.0, name='KDTree')` : returns a cKDTree or None
"""

from typing import Any, Optional
import logging
import numpy as np

logger = logging.getLogger(__name__)


def safe_build_periodic_kdtree(points: Any, boxsize: float = 1.0, name: str = 'KDTree') -> Optional[object]:
	"""Build a toroidal `scipy.spatial.cKDTree` for ``points``.

	Coordinates are folded into ``[0, boxsize)`` first since cKDTree rejects
	data on or beyond the box edge. Returns ``None`` for None or empty input.
	"""
	if points is None:
		logger.debug('%s: points is None, not building tree', name)
		return None
	pts = np.asarray(points, dtype=float)
	if pts.size == 0:
		logger.debug('%s: points empty, not building tree', name)
		return None
	from scipy.spatial import cKDTree

	pts = np.mod(pts, boxsize)
	# np.mod can round tiny negatives up to exactly boxsize
	pts[pts >= boxsize] = 0.0
	return cKDTree(pts, boxsize=boxsize)
