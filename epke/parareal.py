"""Coarse/fine composition of solvers over sub-intervals of a time grid."""

from numbers import Integral
from warnings import warn

import numpy as np

import epke.checkvalue as cv
from epke import pool
from epke.solver import Solver

__all__ = ["SolverTree"]


class SolverTree(Solver):
    """Solver owning finer solvers seeded from its own history.

    Each fine solver starts from this solver's history up to a coarse time
    index and continues on a finer time grid. Fine solvers are trees
    themselves, so refinement may be nested. A fine solver holds no reference
    to the solver that created it, only the coarse index it was seeded at.

    Parameters
    ----------
    params : epke.Parameters
        Kinetics parameters on the coarse time grid
    precomputed : epke.SolverOutput, optional
        History already known at the leading time points
    acceptance_test : bool, optional
        Whether the transformation acceptance test is enabled
    coarse_index : int, optional
        Index of the coarse time point this solver was seeded at, or None for
        a root solver

    Attributes
    ----------
    fine_solvers : list of epke.SolverTree
        Fine solvers created by :meth:`create_fine_solver`
    coarse_index : int or None
        Index of the coarse time point this solver was seeded at
    error : epke.exceptions.EPKEError or None
        Error raised while solving this solver as a fine solver
    failed : bool
        Whether solving this solver as a fine solver raised an error

    """

    def __init__(self, params, precomputed=None, *, acceptance_test=None,
                 coarse_index=None):
        super().__init__(params, precomputed, acceptance_test=acceptance_test)
        self._coarse_index = coarse_index
        self._fine_solvers = []
        self.error = None

    @property
    def fine_solvers(self):
        return self._fine_solvers

    @property
    def coarse_index(self):
        return self._coarse_index

    @property
    def failed(self):
        return self.error is not None

    def create_fine_solver(self, fine_time, coarse_index):
        """Create a solver on a finer grid seeded from this solver's history

        Parameters
        ----------
        fine_time : Iterable of float
            Time grid of the fine solver. Its first `coarse_index` points must
            coincide with those of this solver.
        coarse_index : int
            Number of leading time points copied from this solver's history

        Returns
        -------
        epke.SolverTree
            The new fine solver, also appended to :attr:`fine_solvers`

        """
        cv.check_type('coarse index', coarse_index, Integral)
        cv.check_greater_than('coarse index', coarse_index, 1, True)
        if coarse_index > self.num_filled:
            raise ValueError(
                f'Unable to seed a fine solver at coarse index {coarse_index} '
                f'since only {self.num_filled} time points are filled')

        fine_time = np.asarray(fine_time, dtype=float)
        cv.check_length('fine time', fine_time, coarse_index + 1)
        coarse_time = self.params.time[:coarse_index]
        scale = max(abs(self.params.time[0]), abs(self.params.time[-1]))
        if not np.allclose(fine_time[:coarse_index], coarse_time,
                           rtol=1e-12, atol=1e-12 * scale):
            raise ValueError(
                f'The first {coarse_index} points of the fine time grid must '
                'coincide with the coarse time grid')

        fine_params = self.params.interpolate(fine_time)
        precomputed = self.output.create_precomputed(coarse_index)
        child = type(self)(fine_params, precomputed,
                           acceptance_test=self.acceptance_test,
                           coarse_index=coarse_index)
        self._fine_solvers.append(child)
        return child

    def solve_fine_solvers(self, raise_on_error=True, output=False):
        """Solve every unsolved fine solver, recursively

        Sibling fine solvers are solved concurrently through
        :func:`epke.pool.solve_all`. Every sibling is run before any error is
        reported.

        Parameters
        ----------
        raise_on_error : bool, optional
            Whether to re-raise the first error raised by a fine solver, in the
            order the fine solvers were created. When False, failing fine
            solvers are marked through their :attr:`error` attribute.
        output : bool, optional
            Whether to print progress lines from each fine solver

        """
        pending = [child for child in self._fine_solvers
                   if not child.is_solved and not child.failed]
        results = pool.solve_all(pending, output)
        for child, (child_output, error, num_rejected) in zip(pending, results):
            child._restore(child_output, num_rejected)
            child.error = error

        # Nested fine solvers are created from solved histories
        for child in self._fine_solvers:
            if not child.failed:
                child.solve_fine_solvers(False, output)

        if raise_on_error:
            error = self._first_error()
            if error is not None:
                raise error

    def _first_error(self):
        for child in self._fine_solvers:
            error = child.error if child.failed else child._first_error()
            if error is not None:
                return error
        return None

    def assemble_global_output(self):
        """Combine the coarse and fine histories into a global solution

        Only the coarse history is returned; fine solutions are not yet used
        to correct it.

        Returns
        -------
        epke.SolverOutput
            Copy of this solver's filled history

        """
        warn('No parareal correction is applied; returning the coarse '
             'solution only.', UserWarning)
        return self.output
