#!/usr/bin/env python3
"""参数记录测试模块"""

import logging

import numpy as np
import pytest

from latticemin.core.errors import LatticeConfigurationError
from latticemin.core.parameters import (
    IonicMinimizeParams,
    LatticeMinimizeParams,
    MinimizeParams,
)


class TestMinimizeParams:
    """通用驱动参数"""

    def test_defaults(self):
        params = MinimizeParams()
        assert params.dir_update_scheme == "polak-ribiere"
        assert params.n_iterations == 50

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"dir_update_scheme": "bfgs"},
            {"n_iterations": -1},
            {"alpha_t_reduce_factor": 1.5},
            {"alpha_t_increase_factor": 1.0},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(LatticeConfigurationError):
            MinimizeParams(**kwargs)

    def test_from_dict_ignores_unknown(self, caplog):
        with caplog.at_level(logging.WARNING):
            params = MinimizeParams.from_dict({"n_iterations": 5, "bogus": 1})
        assert params.n_iterations == 5
        assert any("bogus" in r.message for r in caplog.records)

    def test_from_none(self):
        assert MinimizeParams.from_dict(None) == MinimizeParams()


class TestLatticeMinimizeParams:
    """晶格极小化参数"""

    def test_defaults(self):
        params = LatticeMinimizeParams()
        np.testing.assert_array_equal(params.move_scale, np.ones(3))
        assert params.max_allowed_strain == 0.5
        assert params.fd_step == 1e-5
        assert params.relax_probes is True
        assert params.n_dim == 0

    def test_from_dict(self):
        params = LatticeMinimizeParams.from_dict(
            {"move_scale": [1, 1, 0], "fd_step": 1e-4, "dir_update_scheme": "fletcher_reeves"}
        )
        np.testing.assert_array_equal(params.move_scale, [1.0, 1.0, 0.0])
        assert params.fd_step == 1e-4
        assert params.dir_update_scheme == "fletcher-reeves"

    def test_n_dim_not_settable_from_config(self):
        params = LatticeMinimizeParams.from_dict({"n_dim": 4})
        assert params.n_dim == 0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"move_scale": [1.0, 1.0]},
            {"move_scale": [1.0, -1.0, 1.0]},
            {"move_scale": [1.0, np.nan, 1.0]},
            {"max_allowed_strain": 0.0},
            {"fd_step": -1e-5},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(LatticeConfigurationError):
            LatticeMinimizeParams(**kwargs)


def test_ionic_params_from_dict():
    params = IonicMinimizeParams.from_dict({"gtol": 1e-6, "maxls": 20})
    assert params.gtol == 1e-6
    assert params.maxls == 20
    assert params.n_iterations == 200
