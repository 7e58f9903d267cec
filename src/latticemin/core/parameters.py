"""类型化参数记录

从 YAML 配置（:class:`~latticemin.core.config.ConfigManager`）构建的
dataclass 参数：

MinimizeParams
    通用共轭梯度驱动的参数（迭代上限、收敛阈值、线搜索步长控制等）
LatticeMinimizeParams
    在 ``MinimizeParams`` 之上增加晶格极小化专属设置：逐轴移动尺度、
    最大允许应变、有限差分步长、探测点是否弛豫离子，以及派生的
    应变基维数 ``n_dim``
IonicMinimizeParams
    嵌套离子弛豫（scipy L-BFGS-B）的参数
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .errors import LatticeConfigurationError

logger = logging.getLogger(__name__)

DIR_UPDATE_SCHEMES = (
    "polak-ribiere",
    "fletcher-reeves",
    "hestenes-stiefel",
    "steepest-descent",
)


def _filter_fields(cls, values: dict[str, Any] | None) -> dict[str, Any]:
    names = {f.name for f in dataclasses.fields(cls) if f.init}
    values = dict(values or {})
    unknown = sorted(set(values) - names)
    if unknown:
        logger.warning(f"{cls.__name__}: 忽略未知参数 {unknown}")
    return {k: v for k, v in values.items() if k in names}


@dataclass
class MinimizeParams:
    """通用极小化驱动参数

    Attributes
    ----------
    n_iterations : int
        最大迭代数；0 表示只计算初始点。
    energy_diff_threshold : float
        连续 ``n_energy_diff`` 次迭代的能量变化均小于此值时判定收敛。
    n_energy_diff : int
        能量收敛判据所需的连续迭代数。
    knorm_threshold : float
        预条件梯度范数 :math:`\\sqrt{g\\cdot Kg / n_{dim}}` 的收敛阈值。
    dir_update_scheme : str
        搜索方向更新方案，见 ``DIR_UPDATE_SCHEMES``。
    alpha_t_start, alpha_t_min : float
        线搜索试探步长的初值与下限。
    alpha_t_reduce_factor, alpha_t_increase_factor : float
        试探步长缩小/放大因子。
    n_alpha_adjust_max : int
        单次线搜索内试探步长调整次数上限。
    update_test_step_size : bool
        是否用上一次接受的步长作为下一次的试探步长。
    fd_test : bool
        开始前对梯度做有限差分检验（仅记录日志）。
    """

    n_iterations: int = 50
    energy_diff_threshold: float = 1e-6
    n_energy_diff: int = 2
    knorm_threshold: float = 0.0
    dir_update_scheme: str = "polak-ribiere"
    alpha_t_start: float = 1.0
    alpha_t_min: float = 1e-10
    alpha_t_reduce_factor: float = 0.1
    alpha_t_increase_factor: float = 3.0
    n_alpha_adjust_max: int = 6
    update_test_step_size: bool = True
    fd_test: bool = False

    def __post_init__(self) -> None:
        self.dir_update_scheme = str(self.dir_update_scheme).lower().replace("_", "-")
        if self.dir_update_scheme not in DIR_UPDATE_SCHEMES:
            raise LatticeConfigurationError(
                f"未知的方向更新方案: {self.dir_update_scheme}，可选 {DIR_UPDATE_SCHEMES}"
            )
        if self.n_iterations < 0:
            raise LatticeConfigurationError("n_iterations 不能为负数")
        if not 0.0 < self.alpha_t_reduce_factor < 1.0:
            raise LatticeConfigurationError("alpha_t_reduce_factor 必须在 (0, 1) 内")
        if self.alpha_t_increase_factor <= 1.0:
            raise LatticeConfigurationError("alpha_t_increase_factor 必须大于 1")

    @classmethod
    def from_dict(cls, values: dict[str, Any] | None):
        """从配置字典构建，忽略未知键。"""
        return cls(**_filter_fields(cls, values))


@dataclass
class LatticeMinimizeParams(MinimizeParams):
    """晶格极小化参数

    Attributes
    ----------
    move_scale : numpy.ndarray
        逐轴移动尺度（同时作为对角预条件子），0 表示冻结该轴。
    max_allowed_strain : float
        应变张量 Frobenius 范数上限，超出时放弃本次试探。
    fd_step : float
        中心差分步长 h。
    relax_probes : bool
        应力探测点是否执行嵌套离子弛豫；为 ``False`` 时离子保持在参考构型。
    n_dim : int
        应变基维数，由 :class:`~latticemin.lattice.minimizer.LatticeMinimizer`
        构造时写入（只读输出）。
    """

    move_scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    max_allowed_strain: float = 0.5
    fd_step: float = 1e-5
    relax_probes: bool = True
    n_dim: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self.move_scale = np.asarray(self.move_scale, dtype=np.float64)
        if self.move_scale.shape != (3,):
            raise LatticeConfigurationError(
                f"move_scale 必须包含 3 个分量，当前形状: {self.move_scale.shape}"
            )
        if np.any(self.move_scale < 0) or not np.all(np.isfinite(self.move_scale)):
            raise LatticeConfigurationError(f"move_scale 必须为非负有限值: {self.move_scale}")
        if self.max_allowed_strain <= 0:
            raise LatticeConfigurationError("max_allowed_strain 必须为正数")
        if self.fd_step <= 0:
            raise LatticeConfigurationError("fd_step 必须为正数")


@dataclass
class IonicMinimizeParams:
    """嵌套离子弛豫参数（传递给 ``scipy.optimize.minimize``, L-BFGS-B）。"""

    n_iterations: int = 200
    ftol: float = 1e-12
    gtol: float = 1e-7
    maxls: int = 40

    @classmethod
    def from_dict(cls, values: dict[str, Any] | None):
        """从配置字典构建，忽略未知键。"""
        return cls(**_filter_fields(cls, values))
