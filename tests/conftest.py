"""
pytest配置文件 - 提供全局fixtures和测试配置
"""

import numpy as np
import pytest

from latticemin.core.context import SimulationContext
from latticemin.core.energies import Energies
from latticemin.core.parameters import IonicMinimizeParams, LatticeMinimizeParams
from latticemin.core.structure import Atom, IonicStructure
from latticemin.core.symmetry import Symmetries
from latticemin.electrostatics.coulomb import CoulombParams
from latticemin.ionic.species import SpeciesInfo


@pytest.fixture
def cubic_lattice():
    """边长 8 bohr 的简单立方晶格（列为晶格矢量）"""
    return 8.0 * np.eye(3)


@pytest.fixture
def identity_symmetries():
    return Symmetries.identity()


@pytest.fixture
def cubic_symmetries():
    return Symmetries.cubic()


@pytest.fixture
def tetragonal_symmetries():
    """绕 c 轴四重旋转 + c 面镜像生成的 4/m 群（8 个元素）"""
    rot = [[0, -1, 0], [1, 0, 0], [0, 0, 1]]
    mirror = [[1, 0, 0], [0, 1, 0], [0, 0, -1]]
    return Symmetries.from_generators([rot, mirror])


@pytest.fixture
def hexagonal_symmetries():
    """六角晶格坐标下的 6/m 群（12 个元素）：六重旋转 + c 面镜像"""
    six_fold = [[1, -1, 0], [1, 0, 0], [0, 0, 1]]
    mirror = [[1, 0, 0], [0, 1, 0], [0, 0, -1]]
    return Symmetries.from_generators([six_fold, mirror])


@pytest.fixture
def trigonal_symmetries():
    """六角晶格坐标下的 -3m 群（12 个元素）：三重旋转、反演与 a↔b 二重轴"""
    three_fold = [[0, -1, 0], [1, -1, 0], [0, 0, 1]]
    inversion = [[-1, 0, 0], [0, -1, 0], [0, 0, -1]]
    two_fold = [[0, 1, 0], [1, 0, 0], [0, 0, -1]]
    return Symmetries.from_generators([three_fold, inversion, two_fold])


@pytest.fixture
def sodium_species():
    return {"Na": SpeciesInfo("Na", Z=1.0, r_core=1.66, mass=22.99)}


@pytest.fixture
def bcc_sodium_ions():
    """常规立方晶胞中的 bcc 钠：角上离子固定，体心离子可动"""
    return IonicStructure(
        [
            Atom(0, "Na", [0.0, 0.0, 0.0], movable=False),
            Atom(1, "Na", [0.5, 0.5, 0.5]),
        ]
    )


@pytest.fixture
def make_context(sodium_species):
    """构建真实物理模型上下文的工厂（小采样网格以加快测试）"""

    def _make(
        lattice,
        ions=None,
        symmetries=None,
        coulomb_params=None,
        samples=(6, 6, 6),
        species=None,
        **lattice_kwargs,
    ):
        if ions is None:
            ions = IonicStructure([Atom(0, "Na", [0.0, 0.0, 0.0], movable=False)])
        return SimulationContext(
            lattice,
            ions,
            species or sodium_species,
            symmetries=symmetries,
            coulomb_params=coulomb_params,
            samples=samples,
            lattice_params=LatticeMinimizeParams(**lattice_kwargs),
            ionic_params=IonicMinimizeParams(gtol=1e-8),
        )

    return _make


class SyntheticIonInfo:
    """以解析函数 ``energy_fn(geometry)`` 代替离子能量表的测试替身"""

    def __init__(self, context, energy_fn):
        self.context = context
        self.energy_fn = energy_fn
        self.gradient = None
        self.n_calls = 0

    @property
    def n_electrons(self):
        return 1.0

    def update(self, ener, need_gradient=False):
        self.n_calls += 1
        ener["Esynthetic"] = self.energy_fn(self.context.geometry)
        if need_gradient:
            self.gradient = np.zeros((self.context.ions.num_atoms, 3))


class NullElectrons:
    """不贡献能量的电子模型替身，记录调用次数"""

    def __init__(self):
        self.n_calls = 0

    def elec_energy_and_grad(self, ener):
        self.n_calls += 1
        return 0.0


@pytest.fixture
def synthetic_context(make_context):
    """能量由解析函数给出的上下文工厂

    ``energy_fn(geometry, strain)`` 中 ``strain`` 为相对构造时晶格的全应变
    :math:`R_0^{-1}R - I`。
    """

    def _make(lattice, energy_fn, **kwargs):
        ctx = make_context(lattice, **kwargs)
        R0 = ctx.geometry.R.copy()

        def _energy(geometry):
            return energy_fn(geometry, np.linalg.solve(R0, geometry.R) - np.eye(3))

        ctx.ion_info = SyntheticIonInfo(ctx, _energy)
        ctx.elec = NullElectrons()
        ctx.ener = Energies()
        ctx.ion_info.update(ctx.ener)
        return ctx

    return _make


@pytest.fixture
def coulomb_periodic():
    return CoulombParams()


# 全局测试配置
def pytest_configure(config):
    """pytest全局配置"""
    # 设置numpy错误处理（下溢在 Ewald/Born–Mayer 尾部是正常的）
    np.seterr(all="raise", under="ignore")


def pytest_runtest_setup(item):
    """每个测试前的设置"""
    # 设置随机种子确保可重现性
    np.random.seed(42)
