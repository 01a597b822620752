"""
Runnable demonstrations of the inertial dead-reckoning pipeline.

Examples:
    - example_continuous.py: Double integration with ZUPT on a walk/stop trace
    - example_step_detection.py: Pedestrian step detection and step length

Each example prints a results banner and a machine-readable
[DR_SUMMARY] JSON line, and saves figures to examples/figs/.
"""

__all__ = []
