#!/usr/bin/env python3
r"""
有限差分应力

沿应变基向量 :math:`b` 的应力分量取四点中心差分（误差 :math:`O(h^4)`）：

.. math::
    \frac{\partial E}{\partial \varepsilon_b} \approx
    \frac{E(\varepsilon-2hb) - 8E(\varepsilon-hb) + 8E(\varepsilon+hb) - E(\varepsilon+2hb)}{12h}

每个探测点都要传播晶格并（默认）在固定晶胞下重新弛豫离子，因此一次完整
应力计算需要 :math:`4\times|\mathrm{basis}|` 次嵌套离子弛豫，是晶格极小化
中最昂贵的步骤。

所有探测点的离子弛豫都从未扰动应变下已弛豫的离子位置冷启动，探测点之间
互不影响，结果与探测顺序无关。``relax_probes=False`` 时离子固定在参考位置，
只传播晶格并刷新电子能量。

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np

from latticemin.core.energies import relevant_free_energy
from latticemin.ionic.minimizer import IonicMinimizer

logger = logging.getLogger(__name__)

FD_STENCIL = ((-2.0, 1.0), (-1.0, -8.0), (1.0, 8.0), (2.0, -1.0))
"""(步长倍数, 权重)，总权重除以 12h。"""


class StressEvaluator:
    """应变空间的有限差分应力计算器

    Parameters
    ----------
    context : SimulationContext
        共享上下文
    updater : LatticeDependentUpdater
        晶格传播器
    original_lattice : numpy.ndarray
        参考晶格 R0
    fd_step : float, optional
        差分步长 h，默认 1e-5
    relax_probes : bool, optional
        探测点是否弛豫离子，默认 True
    """

    def __init__(
        self,
        context,
        updater,
        original_lattice: np.ndarray,
        fd_step: float = 1e-5,
        relax_probes: bool = True,
    ) -> None:
        self.context = context
        self.updater = updater
        self.original_lattice = np.array(original_lattice, dtype=np.float64)
        self.fd_step = float(fd_step)
        self.relax_probes = bool(relax_probes)
        self.ionic_minimizer = IonicMinimizer(context)
        self.n_probes = 0
        self._reference_positions = None

    def probe_energy(self, strain: np.ndarray) -> float:
        """在给定应变下求相关自由能（按设置弛豫离子）"""
        ctx = self.context
        lattice = self.original_lattice + self.original_lattice @ strain
        if self.relax_probes:
            if self._reference_positions is not None:
                ctx.ions.set_positions(self._reference_positions)
            self.updater.propagate(lattice, ignore_electronic=True)
            self.ionic_minimizer.minimize(ctx.ionic_params)
        else:
            self.updater.propagate(lattice)
        self.n_probes += 1
        return relevant_free_energy(ctx)

    def evaluate(self, strain: np.ndarray, direction: np.ndarray) -> float:
        """沿 ``direction`` 的四点中心差分导数"""
        h = self.fd_step
        total = 0.0
        for multiple, weight in FD_STENCIL:
            total += weight * self.probe_energy(strain + (multiple * h) * direction)
        return total / (12.0 * h)

    def calculate_stress(self, strain: np.ndarray, basis) -> np.ndarray:
        """逐个基向量计算应力分量

        调用前上下文应处于应变 ``strain`` 下已弛豫的状态；返回时离子位置
        恢复为调用时的位置，但晶格停留在最后一个探测点，需由调用方重新传播。

        Returns
        -------
        numpy.ndarray
            形状 (len(basis),)
        """
        n_relax = 4 * len(basis) if self.relax_probes else 0
        logger.info(
            f"计算应力: {len(basis)} 个基向量 × 4 个探测点"
            f"（{n_relax} 次嵌套离子弛豫）"
        )
        self._reference_positions = self.context.ions.get_positions()
        try:
            stress = np.array([self.evaluate(strain, b) for b in basis])
        finally:
            self.context.ions.set_positions(self._reference_positions)
            self._reference_positions = None
        logger.debug(f"应力分量: {stress}")
        return stress
