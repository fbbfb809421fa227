import pytest

from spatial_pd.world.config import WorldConfig
from spatial_pd.world.core import World


@pytest.fixture
def small_config():
    """Small, well-connected configuration that runs quickly."""
    return WorldConfig(r=0.2, u=0.1, N=60, E=20, seed=11)


@pytest.fixture
def small_world(small_config):
    return World(small_config)


@pytest.fixture
def corner_positions():
    """Four agents on the corners of a square centred on the torus."""
    return [[0.25, 0.25], [0.75, 0.25], [0.25, 0.75], [0.75, 0.75]]
