"""
Trajectory container returned by full-history flow calls.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass
class Trajectory:
    """Time history of a propagated state.

    Attributes
    ----------
    times : ndarray
        Array of shape (n_times,) of monotonically increasing times.
    states : ndarray
        Array of shape (n_times, N) whose rows are the states at ``times``.
    """
    times: np.ndarray
    states: np.ndarray

    def __post_init__(self):
        self.times = np.asarray(self.times, dtype=np.float64)
        self.states = np.atleast_2d(np.asarray(self.states, dtype=np.float64))
        if self.states.shape[0] != self.times.shape[0]:
            raise ValueError(
                f"times ({self.times.shape[0]}) and states ({self.states.shape[0]}) "
                "must have the same number of samples"
            )

    def __len__(self) -> int:
        return self.times.shape[0]

    @property
    def duration(self) -> float:
        """Elapsed time between the first and the last sample."""
        if len(self) == 0:
            return 0.0
        return float(self.times[-1] - self.times[0])

    @property
    def final_state(self) -> np.ndarray:
        return self.states[-1]

    @classmethod
    def concatenate(cls, pieces: Sequence["Trajectory"]) -> "Trajectory":
        """
        Join trajectories end to end into one logical trajectory.

        Each piece is time-shifted so that it starts where the previous one
        ended; the state sequences are appended in order.

        Parameters
        ----------
        pieces : sequence of Trajectory
            Trajectories to join, at least one.

        Returns
        -------
        Trajectory
            The concatenated trajectory, starting at the first piece's start time.
        """
        if len(pieces) == 0:
            raise ValueError("At least one trajectory is required")

        times = [pieces[0].times]
        states = [pieces[0].states]
        t_end = pieces[0].times[-1]
        for piece in pieces[1:]:
            shifted = t_end + (piece.times - piece.times[0])
            times.append(shifted)
            states.append(piece.states)
            t_end = shifted[-1]

        return cls(np.concatenate(times), np.vstack(states))
