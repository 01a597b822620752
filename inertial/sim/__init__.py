"""
Synthetic sensor traces with ground truth for demos and tests.

Modules:
    synthetic: Stationary and walk/stop traces generated from analytic
               motion profiles (specific-force forward model)
"""

from inertial.sim.synthetic import SyntheticTrace, stationary_trace, walk_stop_trace

__all__ = [
    "SyntheticTrace",
    "stationary_trace",
    "walk_stop_trace",
]
