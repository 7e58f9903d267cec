"""
电子模块 - 固定电子态模型（只求值，不优化）
"""

__all__ = ["UniformElectronGas"]


def __getattr__(name):
    if name == "UniformElectronGas":
        from .uniform_gas import UniformElectronGas

        return UniformElectronGas
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
