#!/usr/bin/env python3
"""模拟上下文测试模块"""

import numpy as np
import pytest

from latticemin.core.config import ConfigManager
from latticemin.core.context import SimulationContext
from latticemin.core.energies import Energies, relevant_free_energy
from latticemin.core.errors import LatticeConfigurationError
from latticemin.core.structure import Atom, IonicStructure
from latticemin.electrostatics.coulomb import PeriodicCoulomb, TruncatedCoulomb


def sodium_config(**overrides):
    data = {
        "lattice": {"vectors": [[1, 0, 0], [0, 1, 0], [0.1, 0, 1]], "scale": 8.0},
        "species": {"Na": {"Z": 1, "r_core": 1.66}},
        "ions": [
            {"species": "Na", "position": [0, 0, 0], "movable": False},
            {"species": "Na", "position": [0.5, 0.5, 0.5]},
        ],
        "symmetries": "identity",
        "grid": {"samples": [4, 4, 4]},
        "lattice_minimize": {"move_scale": [1, 1, 0], "fd_step": 1e-4},
        "ionic_minimize": {"gtol": 1e-6},
    }
    data.update(overrides)
    return ConfigManager(overrides=data)


class TestFromConfig:
    """由配置构建上下文"""

    def test_lattice_rows_become_columns(self):
        ctx = SimulationContext.from_config(sodium_config())
        # 第三个晶格矢量 (0.1, 0, 1)·8 存为第三列
        np.testing.assert_allclose(ctx.geometry.R[:, 2], [0.8, 0.0, 8.0])
        assert ctx.geometry.detR == pytest.approx(512.0)

    def test_params_and_ions(self):
        ctx = SimulationContext.from_config(sodium_config())
        np.testing.assert_array_equal(ctx.lattice_params.move_scale, [1, 1, 0])
        assert ctx.lattice_params.fd_step == 1e-4
        assert ctx.ionic_params.gtol == 1e-6
        np.testing.assert_array_equal(ctx.ions.movable_mask, [False, True])
        assert isinstance(ctx.coulomb, PeriodicCoulomb)

    def test_truncated_coulomb_from_config(self):
        cfg = sodium_config(coulomb={"truncation": "slab", "direction": 2, "cutoff": 10.0})
        ctx = SimulationContext.from_config(cfg)
        assert isinstance(ctx.coulomb, TruncatedCoulomb)

    def test_missing_lattice(self):
        cfg = ConfigManager(overrides={"ions": [{"species": "Na", "position": [0, 0, 0]}]})
        with pytest.raises(LatticeConfigurationError, match="lattice.vectors"):
            SimulationContext.from_config(cfg)

    def test_missing_ions(self):
        cfg = sodium_config(ions=[])
        with pytest.raises(LatticeConfigurationError, match="ions"):
            SimulationContext.from_config(cfg)


class TestContext:
    """上下文状态"""

    def test_initial_energy_terms(self, make_context, bcc_sodium_ions):
        ctx = make_context(8.1 * np.eye(3), ions=bcc_sodium_ions)
        for name in ("Eewald", "Eloc", "EaZ", "Ekinetic", "Exchange"):
            assert name in ctx.ener
        assert relevant_free_energy(ctx) == pytest.approx(ctx.ener.total())
        assert ctx.relaxation_count == 0

    def test_unknown_species(self, make_context, cubic_lattice):
        ions = IonicStructure([Atom(0, "K", [0, 0, 0])])
        with pytest.raises(LatticeConfigurationError):
            make_context(cubic_lattice, ions=ions)


class TestEnergies:
    """能量表"""

    def test_total_and_dict(self):
        ener = Energies()
        ener["A"] = 1.0
        ener["B"] = -0.25
        assert ener.total() == pytest.approx(0.75)
        assert ener.as_dict() == {"A": 1.0, "B": -0.25}
        assert "A" in ener and "C" not in ener
