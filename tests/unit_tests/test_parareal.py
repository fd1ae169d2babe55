import numpy as np
import pytest
from pytest import approx

import epke
from epke import pool
from epke.exceptions import InvalidCoefficientError


@pytest.fixture
def params():
    time = np.linspace(0.0, 1.0, 11)
    return epke.Parameters(time, [0.08, 1.2], [0.002, 0.0045], 1e-4,
                           rho_imp=0.002 * time, gamma_d=-0.01)


@pytest.fixture
def tree(params):
    tree = epke.SolverTree(params)
    tree.solve()
    return tree


def fine_grid(coarse_time, coarse_index, refinement=4):
    """Coarse points up to coarse_index followed by refined points"""
    head = coarse_time[:coarse_index]
    tail = np.linspace(coarse_time[coarse_index - 1], coarse_time[-1],
                       refinement * (coarse_time.size - coarse_index) + 1)
    return np.concatenate((head, tail[1:]))


def test_create_fine_solver(params, tree):
    fine_time = fine_grid(params.time, 4)
    child = tree.create_fine_solver(fine_time, 4)

    assert tree.fine_solvers == [child]
    assert isinstance(child, epke.SolverTree)
    assert child.coarse_index == 4
    assert child.acceptance_test == tree.acceptance_test
    assert child.num_filled == 4
    assert child.params.time == approx(fine_time)
    assert child.params.gamma_d == params.gamma_d

    # seeded prefix equals the coarse history
    np.testing.assert_array_equal(child.power[:4], tree.power[:4])
    np.testing.assert_array_equal(child.rho[:4], tree.rho[:4])
    np.testing.assert_array_equal(child.concentrations[:, :4],
                                  tree.concentrations[:, :4])


def test_create_fine_solver_invalid(params, tree):
    fine_time = fine_grid(params.time, 4)
    with pytest.raises(ValueError):
        tree.create_fine_solver(fine_time, 0)
    with pytest.raises(TypeError):
        tree.create_fine_solver(fine_time, 2.0)

    shifted = fine_time.copy()
    shifted[2] += 0.01
    with pytest.raises(ValueError, match='coincide'):
        tree.create_fine_solver(shifted, 4)

    unsolved = epke.SolverTree(params)
    with pytest.raises(ValueError, match='filled'):
        unsolved.create_fine_solver(fine_time, 4)
    assert not tree.fine_solvers


@pytest.mark.parametrize("multiproc", [True, False])
def test_solve_fine_solvers(params, tree, multiproc, monkeypatch):
    monkeypatch.setattr(pool, 'USE_MULTIPROCESSING', multiproc)
    children = [tree.create_fine_solver(fine_grid(params.time, i), i)
                for i in (2, 5, 8)]
    tree.solve_fine_solvers()

    for child in children:
        assert child.is_solved
        assert not child.failed
        ref = epke.Solver(child.params, child.precomputed).solve()
        np.testing.assert_array_equal(child.power, ref.power)
        np.testing.assert_array_equal(child.concentrations,
                                      ref.concentrations)

        # refined solution agrees with the coarse one at the end
        assert child.power[-1] == approx(tree.power[-1], rel=5e-2)


def test_nested_fine_solvers(params, tree):
    child = tree.create_fine_solver(fine_grid(params.time, 3), 3)
    tree.solve_fine_solvers()
    grandchild = child.create_fine_solver(fine_grid(child.params.time, 6, 2), 6)
    assert not grandchild.is_solved

    tree.solve_fine_solvers()
    assert grandchild.is_solved
    np.testing.assert_array_equal(grandchild.power[:6], child.power[:6])


def failing_child(params):
    bad_params = epke.Parameters(params.time, [0.08, 1.2], [0.002, 0.0045],
                                 1e-4, rho_imp=params.rho_imp, gamma_d=0.5)
    return epke.SolverTree(bad_params)


@pytest.mark.parametrize("multiproc", [True, False])
def test_failure_policy(params, tree, multiproc, monkeypatch):
    monkeypatch.setattr(pool, 'USE_MULTIPROCESSING', multiproc)
    bad = failing_child(params)
    tree.fine_solvers.append(bad)
    good = tree.create_fine_solver(fine_grid(params.time, 5), 5)

    with pytest.raises(InvalidCoefficientError) as excinfo:
        tree.solve_fine_solvers(raise_on_error=True)
    assert excinfo.value.index == 1

    # the other fine solver ran regardless
    assert good.is_solved
    assert bad.failed
    assert bad.num_filled == 1


def test_failure_marked(params, tree):
    bad = failing_child(params)
    tree.fine_solvers.append(bad)
    good = tree.create_fine_solver(fine_grid(params.time, 5), 5)

    tree.solve_fine_solvers(raise_on_error=False)
    assert bad.failed
    assert isinstance(bad.error, InvalidCoefficientError)
    assert good.is_solved
    assert not good.failed
    assert good.error is None


def test_assemble_global_output(tree):
    with pytest.warns(UserWarning, match='parareal correction'):
        out = tree.assemble_global_output()
    np.testing.assert_array_equal(out.power, tree.power)
    np.testing.assert_array_equal(out.rho, tree.rho)
