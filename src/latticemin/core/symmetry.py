"""点群对称操作

以晶格坐标表示的整数 3×3 对称矩阵集合（行列式 ±1）。本模块只负责
持有、校验与组合这些矩阵；从原子结构自动识别对称性不在本项目范围内，
调用方需显式给出群（或生成元）。
"""

import itertools
import logging

import numpy as np

from .errors import LatticeConfigurationError

logger = logging.getLogger(__name__)


def adjugate(m: np.ndarray) -> np.ndarray:
    """3×3 整数矩阵的伴随矩阵（保持整数运算）"""
    m = np.asarray(m)
    cof = np.array(
        [np.cross(m[1], m[2]), np.cross(m[2], m[0]), np.cross(m[0], m[1])]
    )
    return cof.T


def integer_inverse(m: np.ndarray) -> np.ndarray:
    """行列式为 ±1 的整数矩阵之逆：det(m)·adj(m)"""
    det = int(round(np.linalg.det(m)))
    return det * adjugate(m)


class Symmetries:
    """对称矩阵集合

    Parameters
    ----------
    matrices : iterable of array_like
        整数 3×3 矩阵序列，顺序保留

    Raises
    ------
    LatticeConfigurationError
        矩阵为空、不是 3×3 整数矩阵或行列式不为 ±1
    """

    def __init__(self, matrices) -> None:
        mats = []
        for k, m in enumerate(matrices):
            arr = np.asarray(m)
            if arr.shape != (3, 3):
                raise LatticeConfigurationError(f"对称矩阵 #{k} 不是 3x3: {arr.shape}")
            rounded = np.rint(arr)
            if not np.allclose(arr, rounded):
                raise LatticeConfigurationError(f"对称矩阵 #{k} 含非整数元素:\n{arr}")
            arr = rounded.astype(np.int64)
            det = int(round(np.linalg.det(arr)))
            if abs(det) != 1:
                raise LatticeConfigurationError(
                    f"对称矩阵 #{k} 的行列式必须为 ±1，当前为 {det}"
                )
            mats.append(arr)
        if not mats:
            raise LatticeConfigurationError("对称矩阵集合不能为空（至少包含单位矩阵）")
        self._matrices = mats

    def get_matrices(self) -> list[np.ndarray]:
        """返回对称矩阵列表（副本）"""
        return [m.copy() for m in self._matrices]

    def __len__(self) -> int:
        return len(self._matrices)

    @classmethod
    def identity(cls) -> "Symmetries":
        """仅含单位操作的平凡群"""
        return cls([np.eye(3, dtype=np.int64)])

    @classmethod
    def cubic(cls) -> "Symmetries":
        """立方点群 O_h（48 个带符号置换矩阵），适用于简单立方晶格坐标"""
        mats = []
        for perm in itertools.permutations(range(3)):
            for signs in itertools.product((1, -1), repeat=3):
                m = np.zeros((3, 3), dtype=np.int64)
                for row, col in enumerate(perm):
                    m[row, col] = signs[row]
                mats.append(m)
        return cls(mats)

    @classmethod
    def from_generators(cls, generators, max_order: int = 48) -> "Symmetries":
        """由生成元在矩阵乘法下闭包得到整个群

        Parameters
        ----------
        generators : iterable of array_like
            整数生成元矩阵
        max_order : int, optional
            群阶上限，超过时视为输入有误（3D 晶体点群阶不超过 48）
        """
        gens = cls(generators).get_matrices()
        group = [np.eye(3, dtype=np.int64)]
        keys = {group[0].tobytes()}
        frontier = list(group)
        while frontier:
            new = []
            for a in frontier:
                for g in gens:
                    prod = a @ g
                    key = prod.tobytes()
                    if key not in keys:
                        keys.add(key)
                        group.append(prod)
                        new.append(prod)
            if len(group) > max_order:
                raise LatticeConfigurationError(
                    f"生成元闭包超过 {max_order} 个元素，请检查输入是否为有限点群"
                )
            frontier = new
        logger.debug(f"由 {len(gens)} 个生成元闭包得到 {len(group)} 个对称操作")
        return cls(group)

    @classmethod
    def from_config(cls, value) -> "Symmetries":
        """从配置值构建：``"identity"``、``"cubic"`` 或显式矩阵列表"""
        if value is None:
            return cls.identity()
        if isinstance(value, str):
            key = value.strip().lower()
            if key in ("identity", "none", "off"):
                return cls.identity()
            if key == "cubic":
                return cls.cubic()
            raise LatticeConfigurationError(f"未知的对称性设置: {value}")
        if isinstance(value, dict) and "generators" in value:
            return cls.from_generators(value["generators"])
        return cls(value)
