"""
Hyperplane Poincare sections and their local coordinates.

A section is a collection of M hyperplanes of R^N, hyperplane i being the set
of points x with <n_i, x - c_i> = 0 for a unit normal n_i and a center c_i.
Shooting works on the local coordinates of each hyperplane: the displacement
from the center with the pivot entry k_i = argmax_j |n_i[j]| removed. The pivot
entry is recovered from the others since the displacement is orthogonal to n_i.

Operators (x_bar denotes local coordinates, of length N-1):

- embed:      x_bar -> x = c_i + insert_k(x_bar, -<n_bar_i, x_bar> / n_i[k])
- restrict:   x     -> drop_k(x - c_i)
- d_embed:    linear part of embed, maps into the tangent space of hyperplane i
- d_restrict: linear part of restrict, drop_k(dx), applied to displacements

restrict(embed(x_bar, i), i) == x_bar, and restrict(c_i, i) == 0.

With ``reduce=False`` the section keeps the full coordinates and every operator
copies its input; this is the plain (single) shooting layout.
"""

import logging
from typing import NamedTuple, List

import numpy as np

from poincare_shooting.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class _Hyperplanes(NamedTuple):
    normals: List[np.ndarray]
    centers: List[np.ndarray]
    indices: np.ndarray
    normals_bar: List[np.ndarray]


def _unit(vector, tol=1e-12):
    norm = np.linalg.norm(vector)
    if norm == 0.0:
        raise ValueError("A hyperplane normal cannot be the zero vector")
    if abs(norm - 1.0) > tol:
        logger.debug(f"Normalising hyperplane normal of norm {norm:.6e}")
    return vector / norm


class HyperplaneSection:
    """
    M hyperplanes with their local-coordinate operators.

    Parameters
    ----------
    normals : sequence of array_like
        Normal vector of each hyperplane. Normals are scaled to unit length.
    centers : sequence of array_like
        A point on each hyperplane.
    reduce : bool, optional
        If True (default), local coordinates have N-1 entries; if False,
        they are the full N-dimensional state.

    Attributes
    ----------
    M : int
        Number of hyperplanes.
    dim : int
        Dimension N of the state space.
    reduced_dim : int
        Number of local coordinates per hyperplane.
    """

    def __init__(self, normals, centers, reduce=True):
        self.reduce = reduce
        self._planes = self._build(normals, centers)

    @staticmethod
    def _build(normals, centers):
        normals = [np.array(n, dtype=np.float64).ravel() for n in normals]
        centers = [np.array(c, dtype=np.float64).ravel() for c in centers]

        if len(normals) == 0:
            raise ValueError("A section needs at least one hyperplane")
        if len(normals) != len(centers):
            raise ValueError(
                f"Got {len(normals)} normals but {len(centers)} centers"
            )
        dim = normals[0].shape[0]
        for n, c in zip(normals, centers):
            if n.shape[0] != dim or c.shape[0] != dim:
                raise ValueError(f"All normals and centers must have dimension {dim}")

        normals = [_unit(n) for n in normals]
        indices = np.array([int(np.argmax(np.abs(n))) for n in normals], dtype=np.int64)
        normals_bar = [np.delete(n, k) for n, k in zip(normals, indices)]
        return _Hyperplanes(normals, centers, indices, normals_bar)

    @classmethod
    def from_field(cls, field, centers, params, reduce=True):
        """
        Hyperplanes through ``centers`` orthogonal to the vector field there.

        The normal of hyperplane i is F(c_i, params) / |F(c_i, params)|, so the
        flow crosses each hyperplane upward at its center.
        """
        centers = [np.array(c, dtype=np.float64).ravel() for c in centers]
        normals = [np.asarray(field(c, params), dtype=np.float64) for c in centers]
        return cls(normals, centers, reduce=reduce)

    @classmethod
    def from_indicator(cls, indicator, dim, reduce=True, tol=1e-8):
        """
        Derive the hyperplanes from an affine section indicator.

        Parameters
        ----------
        indicator : callable
            ``indicator(x)`` returns a scalar (one hyperplane) or an array of M
            values, each affine in x and vanishing on its hyperplane.
        dim : int
            Dimension N of the state space.
        reduce : bool, optional
            See :class:`HyperplaneSection`.
        tol : float, optional
            Tolerance of the affinity check.

        Returns
        -------
        HyperplaneSection
            Section whose indicators have the same zero sets and the same
            crossing orientation as ``indicator``.

        Raises
        ------
        ConfigurationError
            If the indicator is not affine or one of its components is constant.
        """
        def evaluate(x):
            return np.atleast_1d(np.asarray(indicator(x), dtype=np.float64)).ravel()

        g0 = evaluate(np.zeros(dim))
        A = np.empty((g0.size, dim), dtype=np.float64)
        for j in range(dim):
            e = np.zeros(dim)
            e[j] = 1.0
            A[:, j] = evaluate(e) - g0

        sample = np.linspace(1.0, 2.0, dim)
        expected = g0 + A @ sample
        if not np.allclose(evaluate(sample), expected, rtol=tol, atol=tol):
            raise ConfigurationError("The section indicator is not affine, it does not define hyperplanes")

        normals, centers = [], []
        for a, b in zip(A, g0):
            a_norm2 = np.dot(a, a)
            if a_norm2 == 0.0:
                raise ConfigurationError("A component of the section indicator does not depend on the state")
            normals.append(a)
            centers.append(-b * a / a_norm2)

        logger.debug(f"Derived {len(normals)} hyperplane(s) from indicator {getattr(indicator, '__name__', indicator)}")
        return cls(normals, centers, reduce=reduce)

    def __repr__(self):
        return f"{self.__class__.__name__}(M={self.M}, dim={self.dim}, reduce={self.reduce})"

    @property
    def M(self) -> int:
        return len(self._planes.normals)

    @property
    def dim(self) -> int:
        return self._planes.normals[0].shape[0]

    @property
    def reduced_dim(self) -> int:
        return self.dim - 1 if self.reduce else self.dim

    @property
    def normals(self):
        return self._planes.normals

    @property
    def centers(self):
        return self._planes.centers

    @property
    def indices(self):
        return self._planes.indices

    @property
    def normals_bar(self):
        return self._planes.normals_bar

    def _check_index(self, i):
        if not 0 <= i < self.M:
            raise ValueError(f"Section index {i} out of range for M={self.M}")

    def _check_length(self, v, n, what):
        v = np.asarray(v, dtype=np.float64)
        if v.shape != (n,):
            raise ValueError(f"{what} must have shape ({n},), got {v.shape}")
        return v

    def indicator(self, x, i) -> float:
        """Signed distance <n_i, x - c_i> of ``x`` to hyperplane ``i``."""
        planes = self._planes
        return float(np.dot(planes.normals[i], x - planes.centers[i]))

    def __call__(self, x) -> np.ndarray:
        """Indicators of all hyperplanes at ``x``."""
        planes = self._planes
        x = np.asarray(x, dtype=np.float64)
        return np.array([np.dot(n, x - c) for n, c in zip(planes.normals, planes.centers)])

    def _insert_pivot(self, planes, i, v_bar, out):
        k = planes.indices[i]
        out[:k] = v_bar[:k]
        out[k] = -np.dot(planes.normals_bar[i], v_bar) / planes.normals[i][k]
        out[k + 1:] = v_bar[k:]
        return out

    def embed(self, x_bar, i, out=None) -> np.ndarray:
        """Point of hyperplane ``i`` with local coordinates ``x_bar``."""
        self._check_index(i)
        x_bar = self._check_length(x_bar, self.reduced_dim, "Local coordinates")
        if out is None:
            out = np.empty(self.dim, dtype=np.float64)
        if not self.reduce:
            out[:] = x_bar
            return out
        planes = self._planes
        self._insert_pivot(planes, i, x_bar, out)
        out += planes.centers[i]
        return out

    def restrict(self, x, i, out=None) -> np.ndarray:
        """Local coordinates on hyperplane ``i`` of a point ``x``."""
        self._check_index(i)
        x = self._check_length(x, self.dim, "State")
        if not self.reduce:
            if out is None:
                return x.copy()
            out[:] = x
            return out
        planes = self._planes
        return self._drop_pivot(planes, i, x - planes.centers[i], out)

    def d_embed(self, dx_bar, i, out=None) -> np.ndarray:
        """Differential of :meth:`embed`: a tangent vector of hyperplane ``i``."""
        self._check_index(i)
        dx_bar = self._check_length(dx_bar, self.reduced_dim, "Local direction")
        if out is None:
            out = np.empty(self.dim, dtype=np.float64)
        if not self.reduce:
            out[:] = dx_bar
            return out
        return self._insert_pivot(self._planes, i, dx_bar, out)

    def d_restrict(self, dx, i, out=None) -> np.ndarray:
        """Differential of :meth:`restrict`, for displacements and tangent vectors."""
        self._check_index(i)
        dx = self._check_length(dx, self.dim, "Displacement")
        if not self.reduce:
            if out is None:
                return dx.copy()
            out[:] = dx
            return out
        return self._drop_pivot(self._planes, i, dx, out)

    def _drop_pivot(self, planes, i, v, out):
        k = planes.indices[i]
        if out is None:
            return np.delete(v, k)
        out[:k] = v[:k]
        out[k:] = v[k + 1:]
        return out

    def update(self, normals, centers):
        """
        Replace every normal and center.

        All derived quantities are recomputed before the new hyperplanes are
        swapped in, so an evaluation started afterwards sees a consistent
        section. The number of hyperplanes and the dimension cannot change.
        """
        planes = self._build(normals, centers)
        if len(planes.normals) != self.M or planes.normals[0].shape[0] != self.dim:
            raise ValueError(
                f"Section update must keep M={self.M} hyperplanes of dimension {self.dim}"
            )
        self._planes = planes
        logger.debug(f"Section updated, pivot indices {planes.indices.tolist()}")
