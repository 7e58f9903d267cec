"""异常类型

致命的配置错误在任何昂贵计算之前抛出；运行期可恢复的情况（如应变过大）
不使用异常，而是由调用方以 NaN 能量信号处理。
"""


class LatticeMinError(RuntimeError):
    """LatticeMin 所有异常的基类。"""


class LatticeConfigurationError(LatticeMinError, ValueError):
    """配置不自洽：对称性与移动尺度冲突、应变基为空、对称矩阵非法等。"""


class IonicRelaxationError(LatticeMinError):
    """离子弛豫过程中能量或梯度出现非有限值。"""


class MinimizationError(LatticeMinError):
    """通用极小化驱动无法开始或继续（例如初始能量非有限）。"""
