"""依赖晶格的状态更新

晶格每变化一次（试探点、有限差分探测点、回滚），所有依赖晶格的子系统
都要按固定顺序失效并重建：几何量、库仑算符、离子能量表、（可选）电子能量。
本模块把这一顺序集中在 ``propagate`` 中，是修改上下文晶格的唯一入口。
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class LatticeDependentUpdater:
    """把新晶格传播到上下文的全部依赖状态

    Parameters
    ----------
    context : SimulationContext
        被更新的上下文

    Attributes
    ----------
    n_updates : int
        ``propagate`` 调用次数
    """

    def __init__(self, context) -> None:
        self.context = context
        self.n_updates = 0

    def propagate(self, lattice: np.ndarray, ignore_electronic: bool = False) -> None:
        """设置晶格并重建依赖状态

        Parameters
        ----------
        lattice : numpy.ndarray
            新晶格矩阵（列为晶格矢量）
        ignore_electronic : bool, optional
            为 True 时跳过电子能量刷新（随后的离子弛豫会自行刷新）
        """
        ctx = self.context
        ctx.geometry.update(lattice)
        ctx.coulomb = ctx.coulomb_params.create_coulomb(ctx.geometry)
        ctx.ion_info.update(ctx.ener)
        if not ignore_electronic:
            ctx.elec.elec_energy_and_grad(ctx.ener)
        self.n_updates += 1
        logger.debug(
            f"propagate #{self.n_updates}: volume = {ctx.geometry.detR:.8g}, "
            f"ignore_electronic = {ignore_electronic}"
        )
