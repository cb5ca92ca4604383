"""
Particle Localization Library.

A NumPy-based library for Monte Carlo localization on landmark maps:
- CTRV motion model with straight-line fallback
- Nearest-landmark association and Gaussian observation likelihood
- Particle filter with resampling wheel and prefix-sum resamplers
"""

from . import models
from . import filters
from . import simulation
from . import utils

__version__ = "0.1.0"
