#!/usr/bin/env python3
r"""
长程静电模块

按截断几何构造依赖晶胞形状的库仑算符：

周期 (periodic)
    三维 Ewald 求和，含均匀中和背景：

    .. math::
        E = \frac{1}{2}\sum_{a,b,\mathbf{L}}{}' q_a q_b
            \frac{\operatorname{erfc}(\eta d)}{d}
          + \frac{2\pi}{\Omega}\sum_{\mathbf{g}\neq 0}
            \frac{e^{-g^2/4\eta^2}}{g^2}\,|S(\mathbf{g})|^2
          - \frac{\eta}{\sqrt{\pi}}\sum_a q_a^2
          - \frac{\pi Q^2}{2\Omega\eta^2}

截断 (slab / wire / isolated)
    只在周期方向上求镜像和的实空间直接求和，核函数 :math:`s(d)/d`
    在 ``cutoff`` 附近以余弦开关平滑截断。

库仑算符在每次晶格变化时重建（Ewald 参数、镜像与倒格矢列表都依赖晶胞
形状），能量与对分数坐标的梯度由 ``energy_and_grad`` 给出。

.. moduleauthor:: Gilbert Young
"""

import logging
from abc import ABC, abstractmethod

import numpy as np
from scipy.special import erfc

from latticemin.core.errors import LatticeConfigurationError

logger = logging.getLogger(__name__)

TRUNCATION_TYPES = ("periodic", "slab", "wire", "isolated")


def lattice_images(
    lattice: np.ndarray, r_cut: float, periodic=(True, True, True)
) -> np.ndarray:
    """返回覆盖半径 ``r_cut`` 所需的笛卡尔平移矢量 (K, 3)

    镜像集合关于原点对称且包含零矢量；非周期方向只取 0。
    """
    lattice = np.asarray(lattice, dtype=np.float64)
    inv_spacing = np.linalg.norm(np.linalg.inv(lattice), axis=1)  # 1/晶面间距
    ranges = []
    for k in range(3):
        n = int(np.ceil(r_cut * inv_spacing[k])) + 1 if periodic[k] else 0
        ranges.append(np.arange(-n, n + 1))
    grid = np.stack(np.meshgrid(*ranges, indexing="ij"), axis=-1).reshape(-1, 3)
    return grid @ lattice.T


def pair_image_sum(
    lattice: np.ndarray,
    images: np.ndarray,
    positions: np.ndarray,
    kernel,
    need_gradient: bool = False,
):
    r"""对所有镜像对 :math:`\frac{1}{2}\sum'_{a,b,\mathbf{L}}\phi_{ab}(d)` 求和

    Parameters
    ----------
    lattice : numpy.ndarray
        晶格矩阵（列为晶格矢量）
    images : numpy.ndarray
        平移矢量 (K, 3)
    positions : numpy.ndarray
        分数坐标 (N, 3)
    kernel : callable
        ``kernel(d) -> (phi, dphi)``，输入/输出形状 (K, N, N)，
        需已包含成对前置因子
    need_gradient : bool, optional
        是否返回对分数坐标的梯度

    Returns
    -------
    tuple
        ``(energy, gradient)``，``gradient`` 形状 (N, 3) 或 ``None``
    """
    r = positions @ lattice.T
    disp = r[None, :, None, :] - r[None, None, :, :] + images[:, None, None, :]
    dist = np.linalg.norm(disp, axis=-1)
    energy_mask = dist > 1e-10
    safe = np.where(energy_mask, dist, 1.0)
    phi, dphi = kernel(safe)
    energy = 0.5 * float(np.sum(np.where(energy_mask, phi, 0.0)))
    if not need_gradient:
        return energy, None
    n = positions.shape[0]
    grad_mask = energy_mask & ~np.eye(n, dtype=bool)[np.newaxis, :, :]
    coef = np.where(grad_mask, dphi / safe, 0.0)
    grad_cart = np.einsum("kab,kabi->ai", coef, disp)
    return energy, grad_cart @ lattice


class CoulombParams:
    """库仑截断参数

    Parameters
    ----------
    truncation : str, optional
        ``periodic``（默认）、``slab``、``wire`` 或 ``isolated``
    direction : int, optional
        slab 的法向 / wire 的轴向（0, 1, 2），默认 2
    cutoff : float, optional
        截断几何下实空间核的截断半径 (bohr)，默认 20
    ewald_tolerance : float, optional
        Ewald 实/倒空间求和的截断精度，默认 1e-14
    """

    def __init__(
        self,
        truncation: str = "periodic",
        direction: int = 2,
        cutoff: float = 20.0,
        ewald_tolerance: float = 1e-14,
    ) -> None:
        self.truncation = str(truncation).strip().lower()
        if self.truncation not in TRUNCATION_TYPES:
            raise LatticeConfigurationError(
                f"未知库仑截断类型: {truncation}，可选 {TRUNCATION_TYPES}"
            )
        if direction not in (0, 1, 2):
            raise LatticeConfigurationError(f"截断方向必须为 0/1/2，当前: {direction}")
        if cutoff <= 0:
            raise LatticeConfigurationError("cutoff 必须为正数")
        self.direction = int(direction)
        self.cutoff = float(cutoff)
        self.ewald_tolerance = float(ewald_tolerance)

    def is_truncated(self) -> np.ndarray:
        """逐轴返回是否被库仑截断（非周期）"""
        flags = np.zeros(3, dtype=bool)
        if self.truncation == "slab":
            flags[self.direction] = True
        elif self.truncation == "wire":
            flags[:] = True
            flags[self.direction] = False
        elif self.truncation == "isolated":
            flags[:] = True
        return flags

    def create_coulomb(self, geometry) -> "Coulomb":
        """按当前几何构造库仑算符"""
        if self.truncation == "periodic":
            return PeriodicCoulomb(geometry, self.ewald_tolerance)
        return TruncatedCoulomb(geometry, ~self.is_truncated(), self.cutoff)

    @classmethod
    def from_config(cls, values: dict | None) -> "CoulombParams":
        values = dict(values or {})
        return cls(
            truncation=values.get("truncation", "periodic"),
            direction=int(values.get("direction", 2)),
            cutoff=float(values.get("cutoff", 20.0)),
            ewald_tolerance=float(values.get("ewald_tolerance", 1e-14)),
        )


class Coulomb(ABC):
    """库仑算符基类，绑定到构造时的晶格"""

    def __init__(self, geometry) -> None:
        self.lattice = geometry.R.copy()
        self.volume = geometry.detR

    @abstractmethod
    def energy_and_grad(
        self, charges: np.ndarray, positions: np.ndarray, need_gradient: bool = False
    ):
        """点电荷体系的静电能与对分数坐标的梯度

        Parameters
        ----------
        charges : numpy.ndarray
            电荷 (N,)
        positions : numpy.ndarray
            分数坐标 (N, 3)
        need_gradient : bool, optional
            是否计算梯度

        Returns
        -------
        tuple
            ``(energy, gradient)``，``gradient`` 为 (N, 3) 或 ``None``
        """
        raise NotImplementedError


class PeriodicCoulomb(Coulomb):
    """三维 Ewald 求和（含中和背景）"""

    def __init__(self, geometry, tolerance: float = 1e-14) -> None:
        super().__init__(geometry)
        rho = np.sqrt(-np.log(tolerance))
        self.eta = np.sqrt(np.pi) / self.volume ** (1.0 / 3.0)
        self.r_cut = rho / self.eta
        self.g_cut = 2.0 * rho * self.eta
        self.images = lattice_images(self.lattice, self.r_cut)

        # 倒格矢（整数索引与对应系数），不含零矢量
        lengths = np.linalg.norm(self.lattice, axis=0)
        ranges = [
            np.arange(-n, n + 1)
            for n in np.ceil(self.g_cut * lengths / (2.0 * np.pi)).astype(int)
        ]
        iG = np.stack(np.meshgrid(*ranges, indexing="ij"), axis=-1).reshape(-1, 3)
        G2 = np.einsum("gi,ij,gj->g", iG, geometry.GGT, iG)
        keep = (G2 > 0) & (G2 <= self.g_cut**2)
        self.iG = iG[keep]
        self.recip_coef = np.exp(-G2[keep] / (4.0 * self.eta**2)) / G2[keep]
        logger.debug(
            f"Ewald: eta={self.eta:.4f}, {len(self.images)} 个实空间镜像, "
            f"{len(self.iG)} 个倒格矢"
        )

    def energy_and_grad(self, charges, positions, need_gradient=False):
        charges = np.asarray(charges, dtype=np.float64)
        positions = np.asarray(positions, dtype=np.float64)
        eta = self.eta
        qq = np.outer(charges, charges)[np.newaxis, :, :]

        def kernel(d):
            e = erfc(eta * d) / d
            de = -e / d - (2.0 * eta / np.sqrt(np.pi)) * np.exp(-((eta * d) ** 2)) / d
            return qq * e, qq * de

        e_real, g_real = pair_image_sum(
            self.lattice, self.images, positions, kernel, need_gradient
        )

        phase = np.exp(2j * np.pi * (positions @ self.iG.T))  # (N, M)
        SG = charges @ phase
        e_recip = (2.0 * np.pi / self.volume) * float(
            np.sum(self.recip_coef * np.abs(SG) ** 2)
        )
        q_tot = float(np.sum(charges))
        e_self = -eta / np.sqrt(np.pi) * float(np.sum(charges**2))
        e_background = -np.pi * q_tot**2 / (2.0 * self.volume * eta**2)
        energy = e_real + e_recip + e_self + e_background

        if not need_gradient:
            return energy, None
        im = np.imag(np.conj(SG)[np.newaxis, :] * phase) * self.recip_coef  # (N, M)
        g_recip = -(8.0 * np.pi**2 / self.volume) * charges[:, None] * (im @ self.iG)
        return energy, g_real + g_recip


class TruncatedCoulomb(Coulomb):
    """仅对周期方向求镜像和的平滑截断实空间库仑求和"""

    def __init__(self, geometry, periodic, cutoff: float) -> None:
        super().__init__(geometry)
        self.periodic = np.asarray(periodic, dtype=bool)
        self.r_cut = float(cutoff)
        self.r_on = 0.8 * self.r_cut
        self.images = lattice_images(self.lattice, self.r_cut, self.periodic)

    def energy_and_grad(self, charges, positions, need_gradient=False):
        charges = np.asarray(charges, dtype=np.float64)
        positions = np.asarray(positions, dtype=np.float64)
        qq = np.outer(charges, charges)[np.newaxis, :, :]
        r_on, r_cut = self.r_on, self.r_cut

        def kernel(d):
            t = np.clip((d - r_on) / (r_cut - r_on), 0.0, 1.0)
            s = 0.5 * (1.0 + np.cos(np.pi * t))
            ds = np.where(
                (d > r_on) & (d < r_cut),
                -0.5 * np.pi * np.sin(np.pi * t) / (r_cut - r_on),
                0.0,
            )
            return qq * s / d, qq * (ds / d - s / d**2)

        return pair_image_sum(self.lattice, self.images, positions, kernel, need_gradient)
