#!/usr/bin/env python3
r"""
离子能量表

在当前晶格与离子分数坐标下计算全部离子相关能量项及其对分数坐标的梯度：

Eewald
    点电荷 :math:`Z_a` 的静电能，由上下文中的库仑算符给出
Epair
    Born–Mayer 短程排斥 :math:`A_{ab}\,e^{-d/\rho_{ab}}`，
    :math:`A_{ab}=\sqrt{A_aA_b}`，:math:`\rho_{ab}=(\rho_a+\rho_b)/2`
Eloc
    空芯局域赝势在 Thomas–Fermi 屏蔽下的二阶能量：

    .. math::
        v_s(g) = -\frac{4\pi Z_s\cos(g r_{c,s})}{g^2},\qquad
        W(\mathbf{g}) = \frac{1}{\Omega}\sum_a v_{s(a)}(g)\,
            e^{-2\pi i\,\mathbf{n}\cdot\mathbf{x}_a}

    .. math::
        E_{loc} = -\frac{\Omega}{2}\sum_{\mathbf{g}\neq 0}\chi(g)\,|W(\mathbf{g})|^2,
        \qquad \chi(g) = \frac{k_{TF}^2}{4\pi}\frac{g^2}{g^2+k_{TF}^2}

EaZ
    赝势 G=0 修正 :math:`\frac{N_e}{\Omega}\sum_a 2\pi Z_a r_{c,a}^2`

倒空间求和使用几何上下文中固定的整数倒格矢表 ``iG``（以倒格矢为基的
相对坐标），因此晶格变化时只需重算 :math:`|\mathbf{g}|^2` 与相位因子。

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np
from numba import jit

from latticemin.electrostatics.coulomb import lattice_images, pair_image_sum

logger = logging.getLogger(__name__)

PAIR_CUTOFF_FACTOR = 40.0
"""Born–Mayer 截断半径（以最大 ρ 为单位）。"""


@jit(nopython=True)
def _structure_factor_numba(iG, positions, vg):
    """JIT优化的加权结构因子 :math:`\\sum_a v_a(g) e^{-2\\pi i n\\cdot x_a}`

    Parameters
    ----------
    iG : numpy.ndarray
        整数倒格矢 (M, 3)
    positions : numpy.ndarray
        分数坐标 (N, 3)
    vg : numpy.ndarray
        各原子的赝势形状因子 (N, M)

    Returns
    -------
    numpy.ndarray
        复数数组 (M,)
    """
    M = iG.shape[0]
    N = positions.shape[0]
    out = np.zeros(M, dtype=np.complex128)
    for g in range(M):
        re = 0.0
        im = 0.0
        for a in range(N):
            phase = -2.0 * np.pi * (
                iG[g, 0] * positions[a, 0]
                + iG[g, 1] * positions[a, 1]
                + iG[g, 2] * positions[a, 2]
            )
            re += vg[a, g] * np.cos(phase)
            im += vg[a, g] * np.sin(phase)
        out[g] = re + 1j * im
    return out


@jit(nopython=True)
def _structure_factor_gradient_numba(iG, positions, vg, weight, W):
    """JIT优化的局域赝势能量对分数坐标的梯度

    返回 :math:`-2\\pi\\sum_g w(g)\\,v_a(g)\\,\\mathbf{n}\\,
    \\mathrm{Im}[\\overline{W(g)}\\,e^{-2\\pi i n\\cdot x_a}]`，形状 (N, 3)。
    """
    M = iG.shape[0]
    N = positions.shape[0]
    grad = np.zeros((N, 3))
    for a in range(N):
        for g in range(M):
            phase = -2.0 * np.pi * (
                iG[g, 0] * positions[a, 0]
                + iG[g, 1] * positions[a, 1]
                + iG[g, 2] * positions[a, 2]
            )
            im = W[g].real * np.sin(phase) - W[g].imag * np.cos(phase)
            c = weight[g] * vg[a, g] * im
            grad[a, 0] += c * iG[g, 0]
            grad[a, 1] += c * iG[g, 1]
            grad[a, 2] += c * iG[g, 2]
    return -2.0 * np.pi * grad


class IonInfo:
    """离子能量与梯度的计算器

    Parameters
    ----------
    context : SimulationContext
        提供 ``geometry``、``coulomb``、``coulomb_params``、``ions``、
        ``species``

    Attributes
    ----------
    gradient : numpy.ndarray or None
        最近一次 ``update(need_gradient=True)`` 得到的能量对分数坐标梯度 (N, 3)
    """

    def __init__(self, context) -> None:
        self.context = context
        self.gradient = None

    @property
    def charges(self) -> np.ndarray:
        species = self.context.species
        return np.array([species[s].Z for s in self.context.ions.symbols])

    @property
    def n_electrons(self) -> float:
        """中性体系的价电子数"""
        return float(np.sum(self.charges))

    def update(self, ener, need_gradient: bool = False) -> None:
        """按当前晶格与离子位置重算离子能量项并写入 ``ener``

        Parameters
        ----------
        ener : Energies
            能量累加器，写入 ``Eewald``、``Epair``、``Eloc``、``EaZ``
        need_gradient : bool, optional
            是否同时计算梯度（存入 ``self.gradient``）
        """
        ctx = self.context
        positions = ctx.ions.get_positions()
        charges = self.charges

        e_ewald, g_ewald = ctx.coulomb.energy_and_grad(charges, positions, need_gradient)
        e_pair, g_pair = self._pair_repulsion(positions, need_gradient)
        e_loc, g_loc = self._local_pseudopotential(positions, need_gradient)

        r_core = np.array([ctx.species[s].r_core for s in ctx.ions.symbols])
        e_az = self.n_electrons / ctx.geometry.detR * float(
            np.sum(2.0 * np.pi * charges * r_core**2)
        )

        ener["Eewald"] = e_ewald
        ener["Epair"] = e_pair
        ener["Eloc"] = e_loc
        ener["EaZ"] = e_az
        self.gradient = g_ewald + g_pair + g_loc if need_gradient else None

    def _pair_repulsion(self, positions, need_gradient):
        ctx = self.context
        symbols = ctx.ions.symbols
        A = np.array([ctx.species[s].pair_A for s in symbols])
        rho = np.array([ctx.species[s].pair_rho for s in symbols])
        if not np.any(A > 0):
            return 0.0, (np.zeros_like(positions) if need_gradient else None)

        A_ab = np.sqrt(np.outer(A, A))[np.newaxis, :, :]
        rho_ab = (0.5 * (rho[:, None] + rho[None, :]))[np.newaxis, :, :]
        r_cut = PAIR_CUTOFF_FACTOR * float(np.max(rho))
        periodic = ~ctx.coulomb_params.is_truncated()
        images = lattice_images(ctx.geometry.R, r_cut, periodic)

        def kernel(d):
            phi = np.where(d < r_cut, A_ab * np.exp(-d / rho_ab), 0.0)
            return phi, -phi / rho_ab

        return pair_image_sum(ctx.geometry.R, images, positions, kernel, need_gradient)

    def screening_weight(self) -> np.ndarray:
        """Thomas–Fermi 线性响应 :math:`\\chi(g)`，对应几何上下文的 ``iG`` 表"""
        geometry = self.context.geometry
        k_f = (3.0 * np.pi**2 * self.n_electrons / geometry.detR) ** (1.0 / 3.0)
        k_tf2 = 4.0 * k_f / np.pi
        G2 = geometry.G2
        return (k_tf2 / (4.0 * np.pi)) * G2 / (G2 + k_tf2)

    def _local_pseudopotential(self, positions, need_gradient):
        ctx = self.context
        geometry = ctx.geometry
        symbols = ctx.ions.symbols
        G2 = geometry.G2
        g = np.sqrt(G2)
        Z = np.array([ctx.species[s].Z for s in symbols])
        rc = np.array([ctx.species[s].r_core for s in symbols])
        vg = -4.0 * np.pi * Z[:, None] * np.cos(rc[:, None] * g[None, :]) / G2[None, :]

        iG = geometry.iG
        W = _structure_factor_numba(iG, positions, vg) / geometry.detR
        weight = self.screening_weight()
        energy = -0.5 * geometry.detR * float(np.sum(weight * np.abs(W) ** 2))
        if not need_gradient:
            return energy, None
        return energy, _structure_factor_gradient_numba(iG, positions, vg, weight, W)
