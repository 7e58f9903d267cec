#!/usr/bin/env python3
r"""
网格几何上下文

保存当前晶格矩阵 :math:`\mathbf{R}`（列为晶格矢量）以及由它派生的全部量：

.. math::
    \mathbf{G} = 2\pi\,\mathbf{R}^{-1},\qquad
    \Omega = \det\mathbf{R},\qquad
    \mathbf{h}_k = \mathbf{R}_{:,k} / S_k

其中 :math:`\mathbf{G}` 的行为倒格矢，:math:`S_k` 为各方向采样点数。
整数倒格矢索引表 ``iG`` 与采样数 ``S`` 与晶格无关，只在构造时生成一次；
``update`` 仅重算依赖 :math:`\mathbf{R}` 的量，因此可以在每个有限差分
探测点上廉价地反复调用。

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np

from latticemin.core.errors import LatticeConfigurationError
from latticemin.utils.utils import format_matrix

logger = logging.getLogger(__name__)


def _build_index_table(samples: np.ndarray) -> np.ndarray:
    """生成关于原点对称的整数倒格矢索引表（不含零矢量）"""
    half = (samples - 1) // 2
    axes = [np.arange(-h, h + 1) for h in half]
    grid = np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1).reshape(-1, 3)
    nonzero = np.any(grid != 0, axis=1)
    return np.ascontiguousarray(grid[nonzero], dtype=np.int64)


class GeometryContext:
    r"""晶格几何与采样网格

    Parameters
    ----------
    lattice : array_like
        3×3 晶格矩阵，列为晶格矢量 (bohr)
    samples : array_like of int, optional
        三个方向的采样点数 :math:`S`，默认 (8, 8, 8)

    Attributes
    ----------
    R : numpy.ndarray
        当前晶格矩阵
    G, GGT : numpy.ndarray
        倒格矩阵与其度规 :math:`\mathbf{G}\mathbf{G}^{\top}`
    detR : float
        晶胞体积 :math:`\Omega`
    h : numpy.ndarray
        实空间采样矢量，第 k 行为 :math:`\mathbf{R}_{:,k}/S_k`
    iG : numpy.ndarray
        整数倒格矢索引表 (M, 3)，构造后不变
    G2 : numpy.ndarray
        ``iG`` 对应的 :math:`|\mathbf{g}|^2`，随晶格更新
    n_updates : int
        ``update`` 调用计数
    """

    def __init__(self, lattice: np.ndarray, samples=(8, 8, 8)) -> None:
        self.S = np.array(samples, dtype=np.int64)
        if self.S.shape != (3,) or np.any(self.S < 1):
            raise LatticeConfigurationError(f"采样点数必须是 3 个正整数: {samples}")
        self.nr = int(np.prod(self.S))
        self.iG = _build_index_table(self.S)
        self.n_updates = 0
        self.update(lattice)

    def update(self, lattice: np.ndarray | None = None) -> None:
        """设置新晶格（可选）并重算全部依赖晶格的量

        Parameters
        ----------
        lattice : numpy.ndarray, optional
            新的 3×3 晶格矩阵；为 ``None`` 时仅按当前 ``R`` 重算。

        Raises
        ------
        LatticeConfigurationError
            晶格矩阵形状错误、含非有限值或行列式非正。
        """
        if lattice is not None:
            lattice = np.array(lattice, dtype=np.float64)
            if lattice.shape != (3, 3) or not np.all(np.isfinite(lattice)):
                raise LatticeConfigurationError("Invalid lattice vectors")
            self.R = lattice
        self.detR = float(np.linalg.det(self.R))
        if self.detR <= 0:
            raise LatticeConfigurationError(
                f"晶格矩阵行列式必须为正（右手系），当前: {self.detR}"
            )
        self.RT = self.R.T
        self.RTR = self.RT @ self.R
        self.invR = np.linalg.inv(self.R)
        self.invRT = self.invR.T
        self.invRTR = np.linalg.inv(self.RTR)
        self.G = (2.0 * np.pi) * self.invR
        self.GT = self.G.T
        self.GGT = self.G @ self.GT
        self.invGGT = np.linalg.inv(self.GGT)
        self.dV = self.detR / self.nr
        self.h = (self.R / self.S[np.newaxis, :]).T
        self.G2 = np.einsum("gi,ij,gj->g", self.iG, self.GGT, self.iG)
        self.n_updates += 1

    @property
    def volume(self) -> float:
        """晶胞体积 (bohr³)"""
        return self.detR

    def lattice_lengths(self) -> np.ndarray:
        """各晶格矢量长度 (bohr)"""
        return np.linalg.norm(self.R, axis=0)

    def print_lattice(self, level: int = logging.INFO) -> None:
        """以日志形式输出晶格矢量（列）"""
        logger.log(level, "R =\n" + format_matrix(self.R, "{:14.8f}"))
        logger.log(level, f"unit cell volume = {self.detR:.8g}")

    def print_reciprocal_lattice(self, level: int = logging.INFO) -> None:
        """以日志形式输出倒格矢（行）"""
        logger.log(level, "G =\n" + format_matrix(self.G, "{:14.8f}"))
