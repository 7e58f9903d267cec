#!/usr/bin/env python3
"""
LatticeMin - 静电模块

按库仑截断几何构造 Ewald 或截断实空间库仑算符。

.. moduleauthor:: Gilbert Young
"""

__all__ = [
    "CoulombParams",
    "PeriodicCoulomb",
    "TruncatedCoulomb",
    "lattice_images",
]


def __getattr__(name):
    if name in __all__:
        from . import coulomb

        return getattr(coulomb, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
