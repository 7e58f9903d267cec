#!/usr/bin/env python3
r"""
模拟上下文

``SimulationContext`` 聚合晶格极小化涉及的全部共享状态：

- ``geometry``：:class:`~latticemin.core.geometry.GeometryContext`
- ``symmetries``：:class:`~latticemin.core.symmetry.Symmetries`
- ``coulomb_params`` / ``coulomb``：库仑截断参数与当前晶格下的库仑算符
- ``ions`` / ``species``：离子结构与种类表
- ``ion_info``：离子能量表（Ewald、短程排斥、局域赝势）
- ``elec``：均匀电子气
- ``ener``：能量累加器
- ``dumper``：输出钩子
- ``lattice_params`` / ``ionic_params``：类型化参数记录

上下文在一次运行中由晶格极小化器独占；一切依赖晶格的状态变更都经由
:class:`~latticemin.lattice.updater.LatticeDependentUpdater` 完成。

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np

from latticemin.core.energies import Energies
from latticemin.core.errors import LatticeConfigurationError
from latticemin.core.geometry import GeometryContext
from latticemin.core.parameters import IonicMinimizeParams, LatticeMinimizeParams
from latticemin.core.structure import Atom, IonicStructure
from latticemin.core.symmetry import Symmetries
from latticemin.electronic.uniform_gas import UniformElectronGas
from latticemin.electrostatics.coulomb import CoulombParams
from latticemin.ionic.ion_info import IonInfo
from latticemin.ionic.species import load_species
from latticemin.utils.dump import Dumper

logger = logging.getLogger(__name__)


class SimulationContext:
    """晶格极小化的共享状态

    Parameters
    ----------
    lattice : array_like
        3×3 晶格矩阵，列为晶格矢量 (bohr)
    ions : IonicStructure
        离子结构（分数坐标）
    species : dict[str, SpeciesInfo]
        种类表，需覆盖 ``ions`` 中出现的全部符号
    symmetries : Symmetries, optional
        对称操作，默认仅单位操作
    coulomb_params : CoulombParams, optional
        库仑截断参数，默认三维周期
    samples : tuple of int, optional
        倒空间采样数，默认 (8, 8, 8)
    lattice_params : LatticeMinimizeParams, optional
    ionic_params : IonicMinimizeParams, optional

    Attributes
    ----------
    relaxation_count : int
        已执行的嵌套离子弛豫次数
    """

    def __init__(
        self,
        lattice,
        ions: IonicStructure,
        species: dict,
        symmetries: Symmetries | None = None,
        coulomb_params: CoulombParams | None = None,
        samples=(8, 8, 8),
        lattice_params: LatticeMinimizeParams | None = None,
        ionic_params: IonicMinimizeParams | None = None,
    ) -> None:
        missing = sorted(set(ions.symbols) - set(species))
        if missing:
            raise LatticeConfigurationError(f"离子引用了未定义的种类: {missing}")
        self.geometry = GeometryContext(lattice, samples)
        self.symmetries = symmetries or Symmetries.identity()
        self.coulomb_params = coulomb_params or CoulombParams()
        self.ions = ions
        self.species = species
        self.lattice_params = lattice_params or LatticeMinimizeParams()
        self.ionic_params = ionic_params or IonicMinimizeParams()
        self.ener = Energies()
        self.dumper = Dumper()
        self.relaxation_count = 0

        self.coulomb = self.coulomb_params.create_coulomb(self.geometry)
        self.ion_info = IonInfo(self)
        self.elec = UniformElectronGas(self)
        self.ion_info.update(self.ener)
        self.elec.elec_energy_and_grad(self.ener)
        logger.info(
            f"模拟上下文: {ions.num_atoms} 个离子, {len(self.symmetries)} 个对称操作, "
            f"库仑截断 {self.coulomb_params.truncation}"
        )

    def dump(self, freq, iteration: int) -> None:
        """触发指定频率的输出钩子"""
        self.dumper.dump(freq, self, iteration)

    @classmethod
    def from_config(cls, cfg) -> "SimulationContext":
        """由 :class:`~latticemin.core.config.ConfigManager` 构建上下文

        Raises
        ------
        LatticeConfigurationError
            缺少晶格或离子定义，或字段不合法
        """
        vectors = cfg.get("lattice.vectors")
        if vectors is None:
            raise LatticeConfigurationError("配置中缺少 lattice.vectors")
        scale = float(cfg.get("lattice.scale", 1.0))
        # 配置中每行一个晶格矢量，内部按列存储
        lattice = scale * np.array(vectors, dtype=np.float64).T

        ion_entries = cfg.get("ions") or []
        if not ion_entries:
            raise LatticeConfigurationError("配置中缺少 ions")
        atoms = [
            Atom(
                id=i,
                symbol=entry["species"],
                position=entry["position"],
                movable=entry.get("movable", True),
            )
            for i, entry in enumerate(ion_entries)
        ]

        return cls(
            lattice,
            IonicStructure(atoms),
            load_species(cfg.section("species")),
            symmetries=Symmetries.from_config(cfg.get("symmetries")),
            coulomb_params=CoulombParams.from_config(cfg.section("coulomb")),
            samples=tuple(cfg.get("grid.samples", (8, 8, 8))),
            lattice_params=LatticeMinimizeParams.from_dict(cfg.section("lattice_minimize")),
            ionic_params=IonicMinimizeParams.from_dict(cfg.section("ionic_minimize")),
        )
