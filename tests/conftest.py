import pytest
import epke
from epke.config import _default_config

from tests.regression_tests import config as regression_config


def pytest_addoption(parser):
    parser.addoption('--serial', action='store_true')


def pytest_configure(config):
    opts = ['serial']
    for opt in opts:
        if config.getoption(opt) is not None:
            regression_config[opt] = config.getoption(opt)


@pytest.fixture
def run_in_tmpdir(tmpdir):
    orig = tmpdir.chdir()
    try:
        yield
    finally:
        orig.chdir()


@pytest.fixture(autouse=True)
def reset_config():
    """Give every test the default configuration."""
    epke.config = _default_config()
    try:
        yield
    finally:
        epke.config = _default_config()


@pytest.fixture(scope='session', autouse=True)
def serial_fine_solvers():
    """Solve fine solvers in-process when running with --serial."""
    if not regression_config['serial']:
        yield
        return

    from epke import pool

    original_setting = pool.USE_MULTIPROCESSING
    pool.USE_MULTIPROCESSING = False
    try:
        yield
    finally:
        pool.USE_MULTIPROCESSING = original_setting
