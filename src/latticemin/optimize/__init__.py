"""
优化模块 - 与领域无关的非线性共轭梯度驱动
"""

__all__ = ["Minimizable", "MinimizeResult", "minimize", "fd_test"]


def __getattr__(name):
    if name == "Minimizable":
        from .minimizable import Minimizable

        return Minimizable
    elif name in ("MinimizeResult", "minimize", "fd_test"):
        from . import driver

        return getattr(driver, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
