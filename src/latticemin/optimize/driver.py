# 文件名: driver.py
# 作者: Gilbert Young
# 修改日期: 2025-10-12
# 文件描述: 与领域无关的预条件非线性共轭梯度驱动（二次线搜索）

r"""
非线性共轭梯度驱动

驱动通过 :class:`~latticemin.optimize.minimizable.Minimizable` 接口操作
对象，自身不持有任何领域状态。每次迭代：

1. 预条件梯度 :math:`Kg` 与范数 :math:`\sqrt{g\cdot Kg/n_{dim}}`；
2. 方向更新 :math:`d \leftarrow \mathrm{constrain}(-Kg + \beta d)`，
   :math:`\beta` 由方向更新方案给出（负值时重置为最速下降）；
3. 二次线搜索：以试探步长 :math:`\alpha_t` 求一次能量，拟合抛物线
   得到步长 :math:`\alpha`；能量为 NaN 时缩小 :math:`\alpha_t`，
   曲率为负或步长偏离过大时调整 :math:`\alpha_t` 后重试。

方向更新方案（:math:`g' = g_{prev}`）：

.. math::
    \beta_{FR} = \frac{g\cdot Kg}{g'\cdot Kg'},\quad
    \beta_{PR} = \frac{g\cdot Kg - g\cdot Kg'}{g'\cdot Kg'},\quad
    \beta_{HS} = \frac{g\cdot Kg - g\cdot Kg'}{(g-g')\cdot d}

收敛判据：预条件梯度范数低于 ``knorm_threshold``；连续 ``n_energy_diff``
次迭代能量变化低于 ``energy_diff_threshold``；或达到 ``n_iterations``。
"""

import logging
from dataclasses import dataclass, field

import numpy as np

from latticemin.core.errors import MinimizationError
from latticemin.core.parameters import MinimizeParams

logger = logging.getLogger(__name__)


def dot(a, b) -> float:
    """实数组的内积（展平后）"""
    return float(np.vdot(a, b).real)


@dataclass
class MinimizeResult:
    """极小化结果

    Attributes
    ----------
    energy : float
        最终能量
    converged : bool
        是否满足梯度或能量收敛判据
    n_iterations : int
        完成的迭代数
    reason : str
        终止原因
    history : list of float
        每次迭代开始时的能量
    """

    energy: float
    converged: bool
    n_iterations: int
    reason: str
    history: list = field(default_factory=list)


def _compute_beta(scheme, g, Kg, gKg, g_prev, Kg_prev, gKg_prev, d_prev):
    if scheme == "steepest-descent" or d_prev is None or gKg_prev == 0.0:
        return 0.0
    if scheme == "fletcher-reeves":
        return gKg / gKg_prev
    gKg_cross = dot(g, Kg_prev)
    if scheme == "polak-ribiere":
        return (gKg - gKg_cross) / gKg_prev
    denom = dot(g - g_prev, d_prev)
    return (gKg - gKg_cross) / denom if denom != 0.0 else 0.0


def _line_minimize(obj, d, E0, g0, alpha_t, params: MinimizeParams):
    """沿 ``d`` 的二次线搜索

    对象状态在返回时位于接受的步长处（失败时回到起点）。

    Returns
    -------
    tuple
        ``(success, energy, gradient, alpha)``
    """
    gdotd = dot(g0, d)
    alpha_prev = 0.0
    alpha = None

    for _ in range(params.n_alpha_adjust_max):
        if alpha_t < params.alpha_t_min:
            logger.warning(
                f"线搜索: 试探步长 {alpha_t:.3e} 低于下限 {params.alpha_t_min:.3e}"
            )
            break
        obj.step(d, alpha_t - alpha_prev)
        alpha_prev = alpha_t
        E_t, _ = obj.compute(False)
        if not np.isfinite(E_t):
            logger.info(f"线搜索: alpha_t = {alpha_t:.3e} 处能量为 NaN，缩小试探步长")
            alpha_t *= params.alpha_t_reduce_factor
            continue
        curvature = 2.0 * (E_t - E0 - gdotd * alpha_t) / alpha_t**2
        if curvature <= 0.0:
            logger.info(f"线搜索: alpha_t = {alpha_t:.3e} 处曲率错误，放大试探步长")
            alpha_t *= params.alpha_t_increase_factor
            continue
        alpha = -gdotd / curvature
        if alpha > params.alpha_t_increase_factor * alpha_t:
            logger.info(f"线搜索: 预测步长 {alpha:.3e} 远大于试探步长，放大后重试")
            alpha_t *= params.alpha_t_increase_factor
            alpha = None
            continue
        if alpha < params.alpha_t_reduce_factor * alpha_t:
            logger.info(f"线搜索: 预测步长 {alpha:.3e} 远小于试探步长，缩小后重试")
            alpha_t *= params.alpha_t_reduce_factor
            alpha = None
            continue
        break

    if alpha is not None:
        for _ in range(params.n_alpha_adjust_max):
            obj.step(d, alpha - alpha_prev)
            alpha_prev = alpha
            E, g = obj.compute(True)
            if np.isfinite(E):
                return True, E, g, alpha
            logger.info(f"线搜索: alpha = {alpha:.3e} 处能量为 NaN，缩小步长")
            alpha *= params.alpha_t_reduce_factor

    # 回到起点
    obj.step(d, -alpha_prev)
    E, g = obj.compute(True)
    return False, E, g, 0.0


def minimize(obj, params: MinimizeParams | None = None) -> MinimizeResult:
    """预条件非线性共轭梯度极小化

    Parameters
    ----------
    obj : Minimizable
        被极小化的对象
    params : MinimizeParams, optional
        驱动参数

    Returns
    -------
    MinimizeResult
        终止时对象处于最终点

    Raises
    ------
    MinimizationError
        初始点能量非有限
    """
    params = params or MinimizeParams()
    n_dim = max(int(getattr(obj, "n_dim", 1)), 1)

    E, g = obj.compute(True)
    if not np.isfinite(E):
        raise MinimizationError(f"初始能量非有限 ({E})，无法开始极小化")
    if params.fd_test:
        fd_test(obj, E, g)

    Kg = obj.precondition(g)
    gKg = dot(g, Kg)
    alpha_t = params.alpha_t_start
    d = g_prev = Kg_prev = None
    gKg_prev = 0.0
    E_prev = E
    n_small_diff = 0
    history = []
    reason = "max iterations reached"
    converged = False
    iteration = 0

    for iteration in range(params.n_iterations + 1):
        if obj.report(iteration):
            E, g = obj.compute(True)
            Kg = obj.precondition(g)
            gKg = dot(g, Kg)
            d = None
        history.append(E)
        knorm = np.sqrt(abs(gKg) / n_dim)
        logger.info(
            f"CG iter {iteration:3d}: E = {E:+.12f}  |Kg| = {knorm:.3e}  alpha_t = {alpha_t:.3e}"
        )

        if knorm == 0.0 or knorm < params.knorm_threshold:
            reason = f"gradient norm {knorm:.3e} below threshold"
            converged = True
            break
        if iteration > 0:
            if abs(E - E_prev) < params.energy_diff_threshold:
                n_small_diff += 1
                if n_small_diff >= params.n_energy_diff:
                    reason = (
                        f"energy change below {params.energy_diff_threshold:.1e} for "
                        f"{params.n_energy_diff} iterations"
                    )
                    converged = True
                    break
            else:
                n_small_diff = 0
        if iteration == params.n_iterations:
            break

        beta = _compute_beta(
            params.dir_update_scheme, g, Kg, gKg, g_prev, Kg_prev, gKg_prev, d
        )
        if beta < 0.0:
            logger.info(f"beta = {beta:.3e} < 0，重置为最速下降")
            beta = 0.0
        d = obj.constrain(-Kg if d is None or beta == 0.0 else -Kg + beta * d)
        if dot(g, d) >= 0.0:
            logger.info("搜索方向不是下降方向，重置为最速下降")
            beta = 0.0
            d = obj.constrain(-Kg)
            if dot(g, d) >= 0.0:
                reason = "no descent direction in constrained space"
                converged = True
                break

        g_prev, Kg_prev, gKg_prev, E_prev = g, Kg, gKg, E
        ok, E, g, alpha = _line_minimize(obj, d, E, g, alpha_t, params)
        if not ok and beta != 0.0:
            logger.info("线搜索失败，改用最速下降方向重试")
            d = obj.constrain(-Kg_prev)
            ok, E, g, alpha = _line_minimize(obj, d, E, g, alpha_t, params)
        if not ok:
            reason = "line minimization failed"
            logger.warning("线搜索连续失败，终止极小化")
            Kg = obj.precondition(g)
            gKg = dot(g, Kg)
            break
        if params.update_test_step_size:
            alpha_t = alpha
        Kg = obj.precondition(g)
        gKg = dot(g, Kg)

    if converged:
        logger.info(f"极小化收敛 ({reason})，E = {E:.12f}")
    else:
        logger.warning(f"极小化未收敛 ({reason})，E = {E:.12f}")
    return MinimizeResult(
        energy=float(E),
        converged=converged,
        n_iterations=iteration,
        reason=reason,
        history=history,
    )


def fd_test(obj, E0: float | None = None, g0=None, step_sizes=None) -> list[float]:
    """沿随机受约束方向检验解析梯度

    对每个步长 :math:`\\alpha` 计算
    :math:`[E(\\alpha d) - E(0)] / (\\alpha\\, g\\cdot d)`，梯度正确时比值
    随 :math:`\\alpha \\to 0` 趋于 1。结果只记录日志，不影响极小化；
    对象状态在返回时复原到起点。

    Returns
    -------
    list of float
        各步长对应的比值
    """
    if E0 is None or g0 is None:
        E0, g0 = obj.compute(True)
    if step_sizes is None:
        step_sizes = [10.0 ** (-k) for k in range(1, 7)]
    d = obj.constrain(np.random.standard_normal(np.shape(g0)))
    dE = dot(g0, d)
    ratios = []
    if dE == 0.0:
        logger.warning("fd_test: 随机方向与梯度正交，跳过")
        return ratios
    logger.info(f"fd_test: 方向导数 = {dE:.6e}")
    for alpha in step_sizes:
        obj.step(d, alpha)
        E_t, _ = obj.compute(False)
        obj.step(d, -alpha)
        ratio = (E_t - E0) / (alpha * dE)
        ratios.append(float(ratio))
        logger.info(f"fd_test: alpha = {alpha:.1e}  比值 = {ratio:.10f}  (1 - 比值 = {1 - ratio:.3e})")
    obj.compute(True)
    return ratios
