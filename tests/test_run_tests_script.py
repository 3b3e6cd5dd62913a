import argparse
import importlib.util
import os

import pytest


SCRIPT = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "scripts", "run_tests.py")


@pytest.fixture(scope="module")
def runner():
    spec = importlib.util.spec_from_file_location("run_tests", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _args(**kw):
    base = dict(slow=False, numba=False, no_jit=False)
    base.update(kw)
    return argparse.Namespace(**base)


def test_default_runs_fast_suite(runner):
    assert runner.build_pytest_args(_args(), []) == ["-q", "-m", "not slow"]


def test_slow_flag_keeps_every_test(runner):
    assert runner.build_pytest_args(_args(slow=True), ["-x"]) == ["-q", "-x"]


def test_numba_flag_selects_parity_tests(runner):
    args = runner.build_pytest_args(_args(numba=True), [])
    assert args == ["-q", os.path.join("tests", "test_numba_parity.py")]
