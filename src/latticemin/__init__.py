"""
LatticeMin - 晶格形状极小化

在晶体对称性与库仑截断约束下，以对称性约化的应变为变量极小化周期
晶胞的相关自由能；每个试探晶胞都嵌套一次离子位置弛豫，应力由有限差分
给出。
"""

__version__ = "1.0"
__author__ = "Gilbert"

from . import core, electronic, electrostatics, ionic, lattice, optimize, utils

__all__ = [
    "core",
    "electrostatics",
    "ionic",
    "electronic",
    "optimize",
    "lattice",
    "utils",
]
