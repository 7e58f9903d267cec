#!/usr/bin/env python3
r"""
对称性约化的应变基

在对称 3×3 张量空间中构造与晶体对称性和固定方向相容的正交归一基：

1. 依次取 6 个规范对称生成元（3 个对角、yz/zx/xy 3 个非对角）；
2. 跳过触及固定轴的生成元；
3. 正交投影到对称张量中满足 :math:`m^{-1} s\, m = s` 的不变子空间
   （:math:`m^{-1} = \det(m)\,\mathrm{adj}(m)`，整数精确运算）；
4. 以 Frobenius 内积 :math:`\langle A,B\rangle = \mathrm{tr}(AB^{\top})`
   对已接受的向量做 Gram–Schmidt，残差平方范数低于 ``SYMM_THRESHOLD_SQ``
   时丢弃，否则归一化后接受。

不变子空间取为线性映射 :math:`S \mapsto m^{-1} S m - S` 在对称张量上的零空间
（``scipy.linalg.null_space``），晶格坐标下的非正交对称矩阵（六角、三方）
同样给出严格对称的基向量。

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np
from scipy.linalg import null_space

from latticemin.core.errors import LatticeConfigurationError
from latticemin.core.symmetry import integer_inverse

logger = logging.getLogger(__name__)

SYMM_THRESHOLD_SQ = 1e-8
"""Gram–Schmidt 残差平方范数阈值，低于此值视为线性相关。"""

AXIS_NAMES = ("a", "b", "c")


def strain_dot(A: np.ndarray, B: np.ndarray) -> float:
    r"""Frobenius 内积 :math:`\mathrm{tr}(AB^{\top})`"""
    return float(np.sum(np.asarray(A) * np.asarray(B)))


def strain_norm(A: np.ndarray) -> float:
    """Frobenius 范数"""
    return float(np.sqrt(strain_dot(A, A)))


def canonical_generator(k: int) -> np.ndarray:
    """第 k 个规范对称生成元（k = 0..5）"""
    s = np.zeros((3, 3))
    if k < 3:
        s[k, k] = 1.0
    else:
        i, j = (k + 1) % 3, (k + 2) % 3
        s[i, j] = s[j, i] = 1.0
    return s


def generator_axes(k: int) -> tuple[int, ...]:
    """生成元 k 触及的晶格轴"""
    if k < 3:
        return (k,)
    return ((k + 1) % 3, (k + 2) % 3)


def check_move_scale_symmetry(symmetries, move_scale, is_fixed) -> None:
    """检查对称相关的轴具有一致的移动尺度与固定状态

    Parameters
    ----------
    symmetries : list of numpy.ndarray
        整数对称矩阵
    move_scale : array_like
        逐轴移动尺度
    is_fixed : array_like of bool
        逐轴固定标志

    Raises
    ------
    LatticeConfigurationError
        某个对称矩阵把移动尺度或固定状态不同的两个轴联系在一起
    """
    move_scale = np.asarray(move_scale, dtype=np.float64)
    is_fixed = np.asarray(is_fixed, dtype=bool)
    for m in symmetries:
        for i in range(3):
            for j in range(3):
                if m[i, j] == 0:
                    continue
                if move_scale[i] != move_scale[j] or is_fixed[i] != is_fixed[j]:
                    raise LatticeConfigurationError(
                        f"晶格轴 {AXIS_NAMES[i]} 与 {AXIS_NAMES[j]} 由对称操作关联，"
                        f"但移动尺度/固定状态不一致: "
                        f"move_scale[{i}]={move_scale[i]}, fixed[{i}]={bool(is_fixed[i])}; "
                        f"move_scale[{j}]={move_scale[j]}, fixed[{j}]={bool(is_fixed[j])}"
                    )


def unit_generator(k: int) -> np.ndarray:
    """Frobenius 范数为 1 的第 k 个生成元"""
    s = canonical_generator(k)
    return s / strain_norm(s)


def invariant_subspace(symmetries, generators) -> np.ndarray:
    r"""对称不变应变子空间的正交归一坐标

    以 ``generators`` 对应的单位生成元为坐标，求堆叠线性映射
    :math:`S \mapsto m^{-1} S m - S` 的零空间。

    Parameters
    ----------
    symmetries : list of numpy.ndarray
        整数对称矩阵
    generators : sequence of int
        参与的生成元序号

    Returns
    -------
    numpy.ndarray
        形状 (len(generators), r) 的正交归一列，r 为不变子空间维数
    """
    units = [unit_generator(k) for k in generators]
    blocks = []
    for m in symmetries:
        m_inv = integer_inverse(m)
        blocks.append(np.column_stack([(m_inv @ u @ m - u).ravel() for u in units]))
    return null_space(np.vstack(blocks))


def symmetrize_strain(s: np.ndarray, symmetries, generators=range(6)) -> np.ndarray:
    """将应变正交投影到对称性不变的对称张量子空间

    只保留 ``s`` 在 ``generators`` 上的分量；返回值严格对称。
    """
    generators = list(generators)
    units = [unit_generator(k) for k in generators]
    N = invariant_subspace(symmetries, generators)
    coords = N @ (N.T @ np.array([strain_dot(u, s) for u in units]))
    out = np.zeros((3, 3))
    for c, u in zip(coords, units):
        out += c * u
    return out


def build_strain_basis(symmetries, is_fixed, move_scale) -> list[np.ndarray]:
    """构造对称性约化的正交归一应变基

    Parameters
    ----------
    symmetries : list of numpy.ndarray
        有序整数对称矩阵（行列式 ±1）
    is_fixed : array_like of bool
        逐轴固定标志（移动尺度为 0 或库仑截断）
    move_scale : array_like
        逐轴移动尺度

    Returns
    -------
    list of numpy.ndarray
        对称、单位范数、相互正交的 3×3 基张量，1 到 6 个

    Raises
    ------
    LatticeConfigurationError
        移动尺度与对称性冲突，或所有方向都被约束导致基为空
    """
    is_fixed = np.asarray(is_fixed, dtype=bool)
    check_move_scale_symmetry(symmetries, move_scale, is_fixed)

    free = [k for k in range(6) if not any(is_fixed[axis] for axis in generator_axes(k))]
    basis: list[np.ndarray] = []
    for k in free:
        s = symmetrize_strain(canonical_generator(k), symmetries, free)
        for b in basis:
            s -= strain_dot(b, s) * b
        norm_sq = strain_dot(s, s)
        if norm_sq < SYMM_THRESHOLD_SQ:
            continue
        basis.append(s / np.sqrt(norm_sq))

    if not basis:
        raise LatticeConfigurationError(
            "所有晶格方向都被约束（库仑截断和/或 move_scale = 0），没有可优化的应变自由度"
        )
    logger.info(f"应变基维数: {len(basis)}")
    for b in basis:
        logger.debug("应变基向量:\n" + np.array2string(b, precision=6, suppress_small=True))
    return basis
