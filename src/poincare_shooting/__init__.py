"""
Poincare shooting for periodic orbits of autonomous ODEs.
"""

from .algorithms import (
    Flow,
    DeferredFlow,
    FlowConfig,
    EventConfig,
    HyperplaneSection,
    PoincareShootingProblem,
    update_for_branch_switching
)
from .models import Trajectory, BifurcationPoint
from .utils import ShootingError, ConfigurationError, IntegrationError

__version__ = "0.1.0"

__all__ = [
    'Flow',
    'DeferredFlow',
    'FlowConfig',
    'EventConfig',
    'HyperplaneSection',
    'PoincareShootingProblem',
    'update_for_branch_switching',
    'Trajectory',
    'BifurcationPoint',
    'ShootingError',
    'ConfigurationError',
    'IntegrationError'
]
