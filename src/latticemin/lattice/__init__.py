"""
晶格模块 - 应变基、依赖状态传播、有限差分应力与晶格极小化
"""

__all__ = [
    "LatticeMinimizer",
    "LatticeDependentUpdater",
    "StressEvaluator",
    "build_strain_basis",
    "check_move_scale_symmetry",
    "strain_dot",
    "strain_norm",
]


def __getattr__(name):
    if name == "LatticeMinimizer":
        from .minimizer import LatticeMinimizer

        return LatticeMinimizer
    elif name == "LatticeDependentUpdater":
        from .updater import LatticeDependentUpdater

        return LatticeDependentUpdater
    elif name == "StressEvaluator":
        from .stress import StressEvaluator

        return StressEvaluator
    elif name in ("build_strain_basis", "check_move_scale_symmetry", "strain_dot", "strain_norm"):
        from . import strain_basis

        return getattr(strain_basis, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
