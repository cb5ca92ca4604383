"""
Trajectory simulation.
"""

from .trajectory import Trajectory, observe_landmarks, simulate_scenario

__all__ = [
    "Trajectory",
    "observe_landmarks",
    "simulate_scenario",
]
