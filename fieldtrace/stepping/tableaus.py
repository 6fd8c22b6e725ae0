# fieldtrace/stepping/tableaus.py
"""
Butcher tableaus of the embedded Runge-Kutta pairs.

Each tableau carries the stage coefficients, the weights of the
propagated solution, the error estimator weights and the dense output
polynomial coefficients. Both pairs are first-same-as-last: the direction
sampled at the end of an accepted step is the first stage of the next.

Conventions for a step of size h with stage directions K (n_stages + 1
rows, the last one sampled at the new position):
- new position      : y0 + h * B @ K[:n_stages]
- error estimate    : h * E @ K
- dense position(x) : y0 + h * (P.T @ K).T @ [x, x^2, ..., x^m]
"""

from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True, eq=False)
class ButcherTableau:
    """
    Coefficients of an embedded explicit Runge-Kutta pair.

    Attributes
    ----------
    name : str
        Human readable name
    C : np.ndarray
        Stage nodes, shape (s,)
    A : np.ndarray
        Stage coefficients, lower triangular, shape (s, s)
    B : np.ndarray
        Weights of the propagated solution, shape (s,)
    E : np.ndarray
        Difference between propagated and embedded weights, shape (s + 1,)
    P : np.ndarray
        Dense output coefficients, shape (s + 1, m)
    error_order : int
        Order of the embedded error estimator
    """
    name: str
    C: np.ndarray
    A: np.ndarray
    B: np.ndarray
    E: np.ndarray
    P: np.ndarray
    error_order: int

    def __post_init__(self):
        s = self.B.shape[0]
        if self.C.shape != (s,) or self.A.shape != (s, s):
            raise ValueError(f"{self.name}: C and A must match {s} stages")
        if self.E.shape != (s + 1,) or self.P.ndim != 2 or self.P.shape[0] != s + 1:
            raise ValueError(f"{self.name}: E and P need {s + 1} rows")
        if np.any(np.triu(self.A) != 0.0):
            raise ValueError(f"{self.name}: A must be strictly lower triangular")
        if not np.allclose(self.A.sum(axis=1), self.C):
            raise ValueError(f"{self.name}: rows of A must sum to C")
        if not np.isclose(self.B.sum(), 1.0):
            raise ValueError(f"{self.name}: B must sum to 1")

    @property
    def n_stages(self) -> int:
        return self.B.shape[0]

    @property
    def control_order(self) -> int:
        """Order used by the step size controller."""
        return self.error_order + 1

    @property
    def dense_order(self) -> int:
        return self.P.shape[1]


def _lower(rows, n) -> np.ndarray:
    A = np.zeros((n, n))
    for i, row in enumerate(rows, start=1):
        A[i, :len(row)] = row
    return A


# Bogacki-Shampine 3(2)
RKF23 = ButcherTableau(
    name="Bogacki-Shampine 3(2)",
    C=np.array([0.0, 1 / 2, 3 / 4]),
    A=_lower([
        [1 / 2],
        [0.0, 3 / 4],
    ], 3),
    B=np.array([2 / 9, 1 / 3, 4 / 9]),
    E=np.array([5 / 72, -1 / 12, -1 / 9, 1 / 8]),
    P=np.array([
        [1.0, -4 / 3, 5 / 9],
        [0.0, 1.0, -2 / 3],
        [0.0, 4 / 3, -8 / 9],
        [0.0, -1.0, 1.0],
    ]),
    error_order=2,
)


# Dormand-Prince 5(4)
RKF45 = ButcherTableau(
    name="Dormand-Prince 5(4)",
    C=np.array([0.0, 1 / 5, 3 / 10, 4 / 5, 8 / 9, 1.0]),
    A=_lower([
        [1 / 5],
        [3 / 40, 9 / 40],
        [44 / 45, -56 / 15, 32 / 9],
        [19372 / 6561, -25360 / 2187, 64448 / 6561, -212 / 729],
        [9017 / 3168, -355 / 33, 46732 / 5247, 49 / 176, -5103 / 18656],
    ], 6),
    B=np.array([35 / 384, 0.0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84]),
    E=np.array([-71 / 57600, 0.0, 71 / 16695, -71 / 1920, 17253 / 339200, -22 / 525, 1 / 40]),
    P=np.array([
        [1.0, -8048581381 / 2820520608, 8663915743 / 2820520608, -12715105075 / 11282082432],
        [0.0, 0.0, 0.0, 0.0],
        [0.0, 131558114200 / 32700410799, -68118460800 / 10900136933, 87487479700 / 32700410799],
        [0.0, -1754552775 / 470086768, 14199869525 / 1410260304, -10690763975 / 1880347072],
        [0.0, 127303824393 / 49829197408, -318862633887 / 49829197408, 701980252875 / 199316789632],
        [0.0, -282668133 / 205662961, 2019193451 / 616988883, -1453857185 / 822651844],
        [0.0, 40617522 / 29380423, -110615467 / 29380423, 69997945 / 29380423],
    ]),
    error_order=4,
)
