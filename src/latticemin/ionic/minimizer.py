# 文件名: minimizer.py
# 作者: Gilbert Young
# 修改日期: 2025-10-12
# 文件描述: 固定晶胞下的离子位置弛豫（scipy L-BFGS-B，变量为分数坐标）

"""
离子弛豫模块

在固定晶格下以可动离子的分数坐标为变量，用 ``scipy.optimize.minimize``
（L-BFGS-B）极小化上下文中的相关自由能。电子能量只依赖体积，因此在
弛豫开始时刷新一次即可。
"""

import logging

import numpy as np
from scipy.optimize import minimize

from latticemin.core.energies import relevant_free_energy
from latticemin.core.errors import IonicRelaxationError
from latticemin.core.parameters import IonicMinimizeParams

logger = logging.getLogger(__name__)


class IonicMinimizer:
    """固定晶胞下的嵌套离子弛豫

    Parameters
    ----------
    context : SimulationContext
        共享的模拟上下文（离子、能量表、电子模型、能量累加器）

    Attributes
    ----------
    n_evaluations : int
        最近一次 ``minimize`` 的能量/梯度求值次数
    """

    def __init__(self, context) -> None:
        self.context = context
        self.n_evaluations = 0

    def minimize(self, params: IonicMinimizeParams | None = None) -> bool:
        """执行离子弛豫

        Parameters
        ----------
        params : IonicMinimizeParams, optional
            L-BFGS-B 参数；缺省时使用上下文中的 ``ionic_params``

        Returns
        -------
        bool
            是否收敛；没有可动离子时直接返回 True

        Raises
        ------
        IonicRelaxationError
            能量或梯度出现非有限值
        """
        ctx = self.context
        params = params or ctx.ionic_params
        ctx.elec.elec_energy_and_grad(ctx.ener)
        self.n_evaluations = 0

        mask = ctx.ions.movable_mask
        if not np.any(mask):
            ctx.ion_info.update(ctx.ener)
            self._check_energy()
            ctx.relaxation_count += 1
            return True

        positions = ctx.ions.get_positions()

        def energy_fn(x_flat):
            trial = positions.copy()
            trial[mask] = x_flat.reshape(-1, 3)
            ctx.ions.set_positions(trial)
            ctx.ion_info.update(ctx.ener, need_gradient=True)
            self.n_evaluations += 1
            energy = self._check_energy()
            grad = ctx.ion_info.gradient[mask]
            if not np.all(np.isfinite(grad)):
                raise IonicRelaxationError("离子梯度出现非有限值")
            return energy, grad.ravel()

        options = {
            "maxiter": params.n_iterations,
            "ftol": params.ftol,
            "gtol": params.gtol,
            "maxls": params.maxls,
        }
        result = minimize(
            energy_fn,
            positions[mask].ravel(),
            method="L-BFGS-B",
            jac=True,
            options=options,
        )

        final = positions.copy()
        final[mask] = result.x.reshape(-1, 3)
        ctx.ions.set_positions(final)
        ctx.ion_info.update(ctx.ener)
        energy = self._check_energy()
        ctx.relaxation_count += 1

        if result.success:
            logger.debug(
                f"离子弛豫收敛: E = {energy:.10f} Eh, nit = {result.nit}, "
                f"nfev = {self.n_evaluations}"
            )
        else:
            logger.warning(f"离子弛豫未收敛: '{result.message}'")
            logger.warning(f"  nit: {result.nit}, fun: {result.fun}")
        return bool(result.success)

    def _check_energy(self) -> float:
        energy = relevant_free_energy(self.context)
        if not np.isfinite(energy):
            raise IonicRelaxationError(f"离子弛豫中能量出现非有限值: {self.context.ener}")
        return energy
