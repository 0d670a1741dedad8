"""
Bifurcation point model used when switching to a branch of periodic orbits.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np


@dataclass
class BifurcationPoint:
    """
    A point of a branch of equilibria where periodic orbits are born.

    Branch switching reads only ``params``; the points of the new orbit are
    given separately as section centers. ``x`` and ``eigenvector`` are kept
    for the caller, e.g. to place those centers around the equilibrium.

    Attributes
    ----------
    x : ndarray
        State of the equilibrium at the bifurcation.
    params : Any
        Parameter set at which the bifurcation occurs; passed unchanged to the
        vector field.
    eigenvector : ndarray, optional
        Critical eigenvector (for a Hopf point, the one of eigenvalue +i*omega).
    """
    x: np.ndarray
    params: Any
    eigenvector: Optional[np.ndarray] = field(default=None)

    def __post_init__(self):
        self.x = np.asarray(self.x, dtype=np.float64)
        if self.eigenvector is not None:
            self.eigenvector = np.asarray(self.eigenvector)
