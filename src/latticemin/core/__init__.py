"""
核心模块 - 几何、对称性、离子结构、参数与配置管理
"""

__all__ = [
    "Atom",
    "IonicStructure",
    "GeometryContext",
    "Symmetries",
    "Energies",
    "ConfigManager",
    "SimulationContext",
    "LatticeMinimizeParams",
    "IonicMinimizeParams",
    "MinimizeParams",
]

# 延迟导入避免循环依赖
def __getattr__(name):
    if name in ("Atom", "IonicStructure"):
        from . import structure
        return getattr(structure, name)
    elif name == "GeometryContext":
        from .geometry import GeometryContext
        return GeometryContext
    elif name == "Symmetries":
        from .symmetry import Symmetries
        return Symmetries
    elif name == "Energies":
        from .energies import Energies
        return Energies
    elif name == "ConfigManager":
        from .config import ConfigManager
        return ConfigManager
    elif name == "SimulationContext":
        from .context import SimulationContext
        return SimulationContext
    elif name in ("LatticeMinimizeParams", "IonicMinimizeParams", "MinimizeParams"):
        from . import parameters
        return getattr(parameters, name)
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
