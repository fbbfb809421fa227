"""Spatial evolutionary Prisoner's Dilemma on a torus."""
from spatial_pd.world.config import WorldConfig
from spatial_pd.world.core import World

__version__ = '0.1.0'

__all__ = ['World', 'WorldConfig', '__version__']
