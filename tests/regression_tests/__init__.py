import numpy as np
import pytest
from scipy.integrate import solve_ivp

# Test configuration options for regression tests
config = {
    "serial": False,
}


def reference_solution(params, power=1.0):
    """Solve the point-kinetics equations with a stiff ODE integrator

    The precursor concentrations follow the same normalization as
    :class:`epke.Solver`, i.e. they are scaled by the generation time at the
    first time point.

    Parameters
    ----------
    params : epke.Parameters
        Kinetics parameters
    power : float
        Initial (critical) power

    Returns
    -------
    power : numpy.ndarray
        Power at each time point
    rho : numpy.ndarray
        Reactivity including feedback at each time point
    concentrations : numpy.ndarray
        Precursor concentrations indexed by (group, time point)

    """
    t = params.time
    gen_time_0 = params.gen_time[0]
    n_prec = params.num_precursors

    def interp(values, s):
        return np.interp(s, t, values)

    def rhs(s, y):
        p, conc, rho_d = y[0], y[1:-1], y[-1]
        lam = np.array([interp(x, s) for x in params.decay_constants])
        beta = np.array([interp(x, s) for x in params.delayed_fractions])
        gen_time = interp(params.gen_time, s)
        rho = interp(params.rho_imp, s) + rho_d

        dp = ((rho - interp(params.beta_eff, s)) / gen_time * p +
              np.dot(lam, conc) / gen_time_0)
        dconc = gen_time_0 / gen_time * beta * p - lam * conc
        drho_d = (-interp(params.lambda_h, s) * rho_d +
                  params.gamma_d * (interp(params.pow_norm, s) * p -
                                    params.eta * power))
        return np.concatenate(([dp], dconc, [drho_d]))

    conc0 = params.delayed_fractions[:, 0] * power / params.decay_constants[:, 0]
    y0 = np.concatenate(([power], conc0, [0.0]))
    sol = solve_ivp(rhs, (t[0], t[-1]), y0, method='Radau', t_eval=t,
                    rtol=1e-10, atol=1e-12)
    assert sol.success, sol.message

    y = sol.y
    return y[0], params.rho_imp + y[-1], y[1:1 + n_prec]


def assert_history_close(test, ref, mask=slice(None), rel=1e-2):
    """Compare two (power, rho, concentrations) histories"""
    power_test, rho_test, conc_test = test
    power_ref, rho_ref, conc_ref = ref
    assert power_test[mask] == pytest.approx(power_ref[mask], rel=rel)
    assert rho_test[mask] == pytest.approx(rho_ref[mask], rel=rel, abs=1e-6)
    for k, (c_test, c_ref) in enumerate(zip(conc_test, conc_ref)):
        assert c_test[mask] == pytest.approx(c_ref[mask], rel=rel), (
            f"Concentrations not equal for precursor group {k}")
