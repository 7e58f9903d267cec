"""
工具模块 - 单位换算、日志配置、输出钩子与轨迹存储
"""

from .utils import (
    BOHR_TO_ANGSTROM,
    HARTREE_PER_BOHR3_TO_GPA,
    HARTREE_TO_EV,
    format_matrix,
    setup_logging,
    strain_to_voigt,
)

__all__ = [
    "HARTREE_TO_EV",
    "BOHR_TO_ANGSTROM",
    "HARTREE_PER_BOHR3_TO_GPA",
    "setup_logging",
    "format_matrix",
    "strain_to_voigt",
    "DumpFrequency",
    "Dumper",
    "LatticeTrajectoryWriter",
    "load_lattice_trajectory",
]


def __getattr__(name):
    if name in ("DumpFrequency", "Dumper"):
        from . import dump

        return getattr(dump, name)
    elif name in ("LatticeTrajectoryWriter", "load_lattice_trajectory"):
        from . import trajectory

        return getattr(trajectory, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
