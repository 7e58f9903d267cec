#!/usr/bin/env python3
r"""
晶格极小化

以对称性约化的应变 :math:`\varepsilon` 为变量极小化相关自由能：

.. math::
    \mathbf{R}(\varepsilon) = \mathbf{R}_0 + \mathbf{R}_0\,\varepsilon

每个试探应变下先在固定晶胞中弛豫离子，再读取能量；需要梯度时由
:class:`~latticemin.lattice.stress.StressEvaluator` 沿每个基向量做有限差分。
``LatticeMinimizer`` 实现 :class:`~latticemin.optimize.minimizable.Minimizable`
接口，由通用共轭梯度驱动迭代。

Notes
-----
应变 Frobenius 范数超过 ``max_allowed_strain`` 时 ``compute`` 返回 NaN，
驱动会缩小步长；这种情况往往说明初始晶格离平衡太远，应以当前晶格重新开始。

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np

from latticemin.core.energies import relevant_free_energy
from latticemin.ionic.minimizer import IonicMinimizer
from latticemin.lattice.strain_basis import build_strain_basis, strain_dot, strain_norm
from latticemin.lattice.stress import StressEvaluator
from latticemin.lattice.updater import LatticeDependentUpdater
from latticemin.optimize.driver import minimize
from latticemin.optimize.minimizable import Minimizable
from latticemin.utils.dump import DumpFrequency
from latticemin.utils.utils import format_matrix

logger = logging.getLogger(__name__)


class LatticeMinimizer(Minimizable):
    """晶格形状极小化器

    Parameters
    ----------
    context : SimulationContext
        共享上下文，运行期间由本对象独占
    params : LatticeMinimizeParams, optional
        缺省时使用 ``context.lattice_params``；构造后其 ``n_dim`` 被写入

    Raises
    ------
    LatticeConfigurationError
        移动尺度与对称性冲突或应变基为空（在任何能量计算之前抛出）
    """

    def __init__(self, context, params=None) -> None:
        self.context = context
        self.params = params or context.lattice_params
        self._original_lattice = context.geometry.R.copy()
        self._strain = np.zeros((3, 3))
        self._evaluated = False

        move_scale = np.asarray(self.params.move_scale, dtype=np.float64)
        is_fixed = (move_scale == 0.0) | context.coulomb_params.is_truncated()
        self._basis = build_strain_basis(
            context.symmetries.get_matrices(), is_fixed, move_scale
        )
        self._D = np.diag(move_scale)
        self.params.n_dim = len(self._basis)

        self.updater = LatticeDependentUpdater(context)
        self.ionic_minimizer = IonicMinimizer(context)
        self.stress_evaluator = StressEvaluator(
            context,
            self.updater,
            self._original_lattice,
            fd_step=self.params.fd_step,
            relax_probes=self.params.relax_probes,
        )

    @property
    def n_dim(self) -> int:
        """应变基维数"""
        return len(self._basis)

    @property
    def strain(self) -> np.ndarray:
        """当前应变张量（副本）"""
        return self._strain.copy()

    @property
    def original_lattice(self) -> np.ndarray:
        """参考晶格 R0（副本）"""
        return self._original_lattice.copy()

    @property
    def strain_basis(self) -> list[np.ndarray]:
        return [b.copy() for b in self._basis]

    @property
    def evaluated(self) -> bool:
        """自上次构造/回滚以来是否已在某个应变下求值"""
        return self._evaluated

    def current_lattice(self) -> np.ndarray:
        return self._original_lattice + self._original_lattice @ self._strain

    def step(self, direction, alpha: float) -> None:
        self._strain = self._strain + alpha * np.asarray(direction, dtype=np.float64)

    def precondition(self, grad):
        return self._D @ grad @ self._D

    def constrain(self, direction):
        result = np.zeros((3, 3))
        for b in self._basis:
            result += b * strain_dot(b, direction)
        return result

    def compute(self, need_gradient: bool):
        """在当前应变下弛豫离子并求能量（及应变梯度）

        Returns
        -------
        tuple
            ``(energy, gradient)``；应变过大时为 ``(nan, None)`` 且状态不变
        """
        norm = strain_norm(self._strain)
        if norm > self.params.max_allowed_strain:
            logger.warning(
                f"应变张量过大 (|ε| = {norm:.4g} > {self.params.max_allowed_strain:.4g})，"
                f"放弃本次晶格步:\n" + format_matrix(self._strain, "{:10.6g}")
            )
            logger.warning("如果这是真实的物理应变，请以下列晶格重新开始计算以避免 Pulay 误差:")
            self.context.geometry.print_lattice(logging.WARNING)
            return float("nan"), None

        ctx = self.context
        self.updater.propagate(self.current_lattice(), ignore_electronic=True)
        self.ionic_minimizer.minimize(ctx.ionic_params)
        energy = relevant_free_energy(ctx)
        self._evaluated = True

        if not need_gradient:
            return energy, None

        stress = self.stress_evaluator.calculate_stress(self._strain, self._basis)
        grad = np.zeros((3, 3))
        for s_k, b in zip(stress, self._basis):
            grad += s_k * b
        self.updater.propagate(self.current_lattice())
        return energy, grad

    def report(self, iteration: int) -> bool:
        geometry = self.context.geometry
        geometry.print_lattice()
        geometry.print_reciprocal_lattice()
        logger.info("Strain Tensor =\n" + format_matrix(self._strain, "{:12.8f}"))
        self.context.dump(DumpFrequency.LATTICE, iteration)
        return False

    def restore(self) -> None:
        """回滚到参考晶格（应变归零）"""
        self._strain = np.zeros((3, 3))
        self._evaluated = False
        self.updater.propagate(self._original_lattice.copy())

    def minimize(self, params=None):
        """用通用共轭梯度驱动极小化本对象

        Returns
        -------
        MinimizeResult
        """
        params = params or self.params
        logger.info(f"开始晶格极小化: 维数 {self.n_dim}, 方案 {params.dir_update_scheme}")
        result = minimize(self, params)
        self.context.dump(DumpFrequency.END, result.n_iterations)
        return result
