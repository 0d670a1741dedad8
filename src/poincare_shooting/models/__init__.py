# Import models
from .trajectory import Trajectory
from .bifurcation_point import BifurcationPoint

# Export all model classes
__all__ = [
    'Trajectory',
    'BifurcationPoint'
]
