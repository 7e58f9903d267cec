#!/usr/bin/env python3
r"""
离子结构模块

提供晶格极小化中的离子数据结构。离子位置统一以晶格（分数）坐标存储，
因此改变晶格矩阵时原子随晶胞一起仿射变形，无需额外变换：

.. math::
    \mathbf{r} = \mathbf{R}\,\mathbf{x}

其中 :math:`\mathbf{R}` 的列为晶格矢量，:math:`\mathbf{x}` 为分数坐标。

Classes
-------
Atom
    单个离子：编号、元素符号、分数坐标与可动标志
IonicStructure
    离子集合，提供批量读写分数坐标与可动掩码

Notes
-----
晶格矩阵本身由 :class:`~latticemin.core.geometry.GeometryContext` 持有，
本模块只描述离子。
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class Atom:
    """离子对象

    Parameters
    ----------
    id : int
        唯一编号
    symbol : str
        元素（赝势种类）符号，须在种类表中定义
    position : array_like
        分数坐标 (3,)
    movable : bool, optional
        是否参与离子弛豫，默认 True

    Examples
    --------
    >>> atom = Atom(0, "Na", [0.0, 0.0, 0.0])
    >>> atom.move_by([0.1, 0.0, 0.0])
    >>> atom.position
    array([0.1, 0. , 0. ])
    """

    def __init__(
        self, id: int, symbol: str, position: np.ndarray, movable: bool = True
    ) -> None:
        self.id = id
        self.symbol = symbol
        self.position = np.array(position, dtype=np.float64)
        self.movable = bool(movable)
        if self.position.shape != (3,):
            raise ValueError(f"分数坐标必须是3D向量，当前形状: {self.position.shape}")

    def move_by(self, displacement: np.ndarray) -> None:
        """按分数坐标增量移动离子

        Raises
        ------
        ValueError
            如果位置增量不是3D向量
        """
        displacement = np.asarray(displacement, dtype=np.float64)
        if displacement.shape != (3,):
            raise ValueError(f"位置增量必须是3D向量，当前形状: {displacement.shape}")
        self.position += displacement

    def copy(self) -> "Atom":
        """创建深拷贝"""
        return Atom(self.id, self.symbol, self.position.copy(), self.movable)


class IonicStructure:
    """离子集合

    Parameters
    ----------
    atoms : list of Atom
        离子列表，不能为空，编号必须唯一

    Attributes
    ----------
    atoms : list of Atom
        离子对象列表
    num_atoms : int
        离子数量（属性）
    """

    def __init__(self, atoms: list[Atom]) -> None:
        if not atoms:
            raise ValueError("原子列表不能为空")
        self.atoms = atoms
        self._validate_atoms()

    def _validate_atoms(self) -> None:
        atom_ids = set()
        for atom in self.atoms:
            if atom.id in atom_ids:
                raise ValueError(f"原子ID {atom.id} 重复")
            atom_ids.add(atom.id)
            if not np.all(np.isfinite(atom.position)):
                raise ValueError(f"原子 {atom.id} 的位置包含无效值")

    @property
    def num_atoms(self) -> int:
        """返回原子数量"""
        return len(self.atoms)

    @property
    def symbols(self) -> list[str]:
        """按原子顺序返回元素符号列表"""
        return [atom.symbol for atom in self.atoms]

    @property
    def movable_mask(self) -> np.ndarray:
        """可动原子的布尔掩码 (num_atoms,)"""
        return np.array([atom.movable for atom in self.atoms], dtype=bool)

    def get_positions(self) -> np.ndarray:
        """返回分数坐标数组 (num_atoms, 3) 的副本"""
        return np.array([atom.position for atom in self.atoms], dtype=np.float64)

    def set_positions(self, positions: np.ndarray) -> None:
        """设置全部原子的分数坐标

        Parameters
        ----------
        positions : numpy.ndarray
            分数坐标数组，形状为 (num_atoms, 3)
        """
        positions = np.asarray(positions, dtype=np.float64)
        if positions.shape != (len(self.atoms), 3):
            raise ValueError(
                f"位置数组形状错误: 期望({len(self.atoms)}, 3), 实际{positions.shape}"
            )
        for i, atom in enumerate(self.atoms):
            atom.position = positions[i].copy()

    def get_cartesian_positions(self, lattice: np.ndarray) -> np.ndarray:
        r"""按给定晶格（列为晶格矢量）换算笛卡尔坐标：:math:`\mathbf{r}^{\top} = \mathbf{x}^{\top}\mathbf{R}^{\top}`"""
        return self.get_positions() @ np.asarray(lattice, dtype=np.float64).T

    def copy(self) -> "IonicStructure":
        """创建深拷贝"""
        return IonicStructure([atom.copy() for atom in self.atoms])
