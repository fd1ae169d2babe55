import numpy as np
import pytest

import epke
from epke import pool
from epke.exceptions import InvalidCoefficientError


def make_solvers():
    time = np.linspace(0.0, 0.5, 26)
    good = [epke.Solver(epke.Parameters(time, [0.1], [0.0065], 1e-4,
                                        rho_imp=rho))
            for rho in (0.0005, 0.001, 0.002)]
    bad = epke.Solver(epke.Parameters(time, [0.1], [0.0065], 1e-4,
                                      rho_imp=0.001, gamma_d=1.0))
    return good, bad


@pytest.mark.parametrize("multiproc", [True, False])
def test_solve_all(multiproc, monkeypatch):
    monkeypatch.setattr(pool, 'USE_MULTIPROCESSING', multiproc)
    monkeypatch.setattr(pool, 'NUM_PROCESSES', 2)
    good, bad = make_solvers()
    results = pool.solve_all(good + [bad])
    assert len(results) == 4

    for solver, (output, error, num_rejected) in zip(good, results):
        assert error is None
        assert num_rejected == 0
        ref = epke.Solver(solver.params).solve()
        np.testing.assert_array_equal(output.power, ref.power)

    output, error, _ = results[-1]
    assert isinstance(error, InvalidCoefficientError)
    assert error.index == 1
    assert output.num_time_steps == 1


def test_solve_all_config_processes(monkeypatch):
    monkeypatch.setattr(pool, 'USE_MULTIPROCESSING', True)
    good, _ = make_solvers()
    with epke.config.patch('num_processes', 1):
        results = pool.solve_all(good[:2])
    assert all(error is None for _, error, _ in results)


def test_solve_all_empty():
    assert pool.solve_all([]) == []
