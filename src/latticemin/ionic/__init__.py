"""
离子模块 - 种类参数、离子能量表与固定晶胞下的离子弛豫
"""

__all__ = ["SpeciesInfo", "IonInfo", "IonicMinimizer"]


def __getattr__(name):
    if name == "SpeciesInfo":
        from .species import SpeciesInfo

        return SpeciesInfo
    elif name == "IonInfo":
        from .ion_info import IonInfo

        return IonInfo
    elif name == "IonicMinimizer":
        from .minimizer import IonicMinimizer

        return IonicMinimizer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
