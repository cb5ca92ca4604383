"""
Filtering algorithms.
"""

from .base import Particle, LandmarkObs, LocalizationResult
from .particle import ParticleFilter

__all__ = [
    "Particle",
    "LandmarkObs",
    "LocalizationResult",
    "ParticleFilter",
]
