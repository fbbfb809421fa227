# -*- coding: utf-8 -*-

"""
world/config.py

Central configuration for the spatial Prisoner's Dilemma world. Keeping the
defaults and the payoff layout in one place keeps the engine, the batch
runner and the command line in agreement.

Contents:
---------
1. WORLD_DEFAULTS:
   - Neighbourhood radius, defection bonus, population size and epoch budget
     used when a caller does not supply its own values.

2. PAYOFFS:
   - Layout of the 2x2 one-shot Prisoner's Dilemma table. CC and CD are fixed,
     DC and DD are offsets on top of the defection bonus `u`.

3. QUEUE_DEFAULTS:
   - How many runs to queue per configuration and how many epochs the batch
     runner advances per tick.

4. WorldConfig:
   - The typed record the engine consumes. There is no dynamic key/value
     configuration inside the engine; `WorldConfig.from_mapping` is the single
     place where loose mappings (CLI namespaces, dicts) are converted.

Usage:
------
    from spatial_pd.world.config import WorldConfig

    cfg = WorldConfig(r=0.05, N=400, E=200)
    cfg.payoffs.DC   # 1 + u
"""
from dataclasses import dataclass, fields, replace as _replace
from typing import Any, Mapping

from spatial_pd.world.fitness import PayoffTable

# ───────────────────────────────────────────────────────────────────────────────
# 1) WORLD PARAMETERS
# ───────────────────────────────────────────────────────────────────────────────
WORLD_DEFAULTS = {
    'r': 0.02,              # neighbourhood radius on the unit torus
    'u': 0.175,             # cost / benefit ratio (defection bonus)
    'N': 6400,              # population size
    'E': 5000,              # epochs a population runs for
    'use_average': False,   # average payoff over neighbours instead of the total
    'seed': 0,              # RNG seed, one generator per World
    'wrap_y': True,         # wrap the second axis too (False = first axis only)
}

# ───────────────────────────────────────────────────────────────────────────────
# 2) PAYOFF LAYOUT
# ───────────────────────────────────────────────────────────────────────────────
PAYOFFS = {
    'CC': 1.0,      # cooperator meets cooperator
    'CD': 0.0,      # cooperator meets defector
    'DC': 1.0,      # defector meets cooperator, plus u
    'DD': 0.0,      # defector meets defector, plus u
}

# ───────────────────────────────────────────────────────────────────────────────
# 3) RUN QUEUE
# ───────────────────────────────────────────────────────────────────────────────
QUEUE_DEFAULTS = {
    'num_runs': 10,     # runs queued per configuration
    'step': 1,          # epochs advanced per runner tick
}


def payoff_table(u: float) -> PayoffTable:
    """Return the payoff table for defection bonus `u`."""
    return PayoffTable(
        CC=PAYOFFS['CC'],
        CD=PAYOFFS['CD'],
        DC=PAYOFFS['DC'] + u,
        DD=PAYOFFS['DD'] + u,
    )


@dataclass
class WorldConfig:
    """Parameters of one simulation run.

    Pure data: nothing here is validated beyond what the engine asserts
    when it is set up.
    """
    r: float = WORLD_DEFAULTS['r']
    u: float = WORLD_DEFAULTS['u']
    N: int = WORLD_DEFAULTS['N']
    E: int = WORLD_DEFAULTS['E']
    use_average: bool = WORLD_DEFAULTS['use_average']
    seed: int = WORLD_DEFAULTS['seed']
    wrap_y: bool = WORLD_DEFAULTS['wrap_y']

    @property
    def r_sqr(self) -> float:
        return self.r * self.r

    @property
    def payoffs(self) -> PayoffTable:
        return payoff_table(self.u)

    def replace(self, **changes) -> 'WorldConfig':
        """Return a copy with `changes` applied."""
        return _replace(self, **changes)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> 'WorldConfig':
        """Build a config from a dict-like object, ignoring unknown keys.

        Missing keys and `None` values fall back to `WORLD_DEFAULTS`.
        """
        kwargs = {}
        for f in fields(cls):
            value = mapping.get(f.name)
            if value is not None:
                kwargs[f.name] = value
        return cls(**kwargs)
