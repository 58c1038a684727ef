"""
Bounded discrete logarithm recovery.

Inverts target = G^v mod P when v is known to lie in [0, R), using
baby-step/giant-step in O(sqrt(R)) group operations and memory. Decryption
in both DDH schemes ends here, so the baby-step table is computed once per
solver and reused.
"""

import threading
from math import isqrt
from typing import Dict, Optional

from fe_config import configure_logger
from fe_errors import DiscreteLogNotFound, ParameterError

dlog_logger = configure_logger("dlog")


def _ceil_sqrt(n: int) -> int:
    root = isqrt(n)
    return root if root * root == n else root + 1


class BabyStepGiantStep:
    """
    Solver for discrete logarithms in a fixed range [0, R).

    The solver never reports an exponent >= R, even when the giant steps
    would reach past it.
    """

    def __init__(self, g: int, p: int, order: int, search_range: int):
        """
        Args:
            g: Generator of the subgroup
            p: Modulus
            order: Order of g
            search_range: Exclusive upper end R of the exponent range
        """
        if search_range < 1:
            raise ParameterError(f"Search range must be at least 1, got {search_range}")
        if search_range > order:
            raise ParameterError(
                f"Search range {search_range} exceeds the group order; "
                f"recovered exponents would be ambiguous"
            )
        self.g = g
        self.p = p
        self.order = order
        self.search_range = search_range
        self.step = _ceil_sqrt(search_range)
        # G^{-m}
        self.giant_factor = pow(g, (order - self.step) % order, p)

        self._table: Optional[Dict[int, int]] = None
        self._table_lock = threading.Lock()

    def _baby_steps(self) -> Dict[int, int]:
        if self._table is None:
            with self._table_lock:
                if self._table is None:
                    table = {}
                    element = 1
                    for j in range(self.step):
                        # Keep the smallest j; duplicates only occur if step > order.
                        table.setdefault(element, j)
                        element = (element * self.g) % self.p
                    dlog_logger.debug(f"Built baby-step table with {self.step} entries")
                    self._table = table
        return self._table

    def solve(self, target: int) -> int:
        """
        Recover v with G^v = target and 0 <= v < R.

        Raises:
            DiscreteLogNotFound: if no exponent in [0, R) maps to target
        """
        table = self._baby_steps()
        gamma = target % self.p

        for i in range(self.step):
            j = table.get(gamma)
            if j is not None:
                v = i * self.step + j
                if v < self.search_range:
                    return v
                # The smallest matching exponent lies past R.
                break
            gamma = (gamma * self.giant_factor) % self.p

        dlog_logger.warning(
            f"Discrete log not found in [0, {self.search_range}) after at most {self.step} giant steps"
        )
        raise DiscreteLogNotFound(
            f"No exponent in [0, {self.search_range}) maps to the target element"
        )


def bounded_dlog(target: int, g: int, p: int, order: int, search_range: int) -> int:
    """One-shot bounded discrete log; see BabyStepGiantStep.solve."""
    return BabyStepGiantStep(g, p, order, search_range).solve(target)
