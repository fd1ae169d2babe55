"""Dedicated module containing the concurrent solve of sibling solvers

Provided to avoid some circular imports
"""
from itertools import repeat, starmap
from multiprocessing import Pool

import epke
from epke.exceptions import EPKEError

# Configurable switch that enables / disables the use of
# multiprocessing routines when solving fine solvers
USE_MULTIPROCESSING = True

# Allow user to override the number of worker processes to use for fine
# solver calculations
NUM_PROCESSES = None


def _solve(solver, output):
    """Solve a single solver, capturing numerical and input errors

    Returns
    -------
    output : epke.SolverOutput
        Filled history, partial when an error was raised
    error : epke.exceptions.EPKEError or None
        Error raised during the solve
    num_rejected : int
        Number of rejected transformations

    """
    try:
        solver.solve(output)
    except EPKEError as e:
        return solver.output, e, solver.num_rejected
    return solver.output, None, solver.num_rejected


def solve_all(solvers, output=False):
    """Solve a list of independent solvers

    Parameters
    ----------
    solvers : list of epke.Solver
        Solvers to propagate. The objects are pickled to worker processes when
        multiprocessing is used, so they are not modified in place.
    output : bool, optional
        Whether to print progress lines from each solver

    Returns
    -------
    list of tuple
        ``(output, error, num_rejected)`` for each solver, in order

    """
    inputs = zip(solvers, repeat(output))

    if USE_MULTIPROCESSING and len(solvers) > 1:
        processes = NUM_PROCESSES
        if processes is None:
            processes = epke.config['num_processes']
        with Pool(processes) as pool:
            results = list(pool.starmap(_solve, inputs))
    else:
        results = list(starmap(_solve, inputs))

    return results
