"""可极小化对象接口

通用极小化驱动只通过本接口操作对象。状态（当前点）由对象自身持有，
驱动只提供搜索方向与步长；``compute`` 返回 ``(energy, gradient)``，
其中 gradient 与搜索方向是同形状的 numpy 数组。
"""

from abc import ABC, abstractmethod


class Minimizable(ABC):
    """可被 :func:`latticemin.optimize.driver.minimize` 驱动的对象

    Attributes
    ----------
    n_dim : int
        自由度数，用于梯度范数的归一化；子类应覆盖
    """

    n_dim = 1

    @abstractmethod
    def step(self, direction, alpha: float) -> None:
        """沿 ``direction`` 前进 ``alpha``"""
        raise NotImplementedError

    @abstractmethod
    def compute(self, need_gradient: bool):
        """在当前点求能量（及梯度）

        Returns
        -------
        tuple
            ``(energy, gradient)``，不需要梯度时 gradient 为 ``None``；
            能量为 NaN 表示该点不可接受
        """
        raise NotImplementedError

    def precondition(self, grad):
        return grad

    def constrain(self, direction):
        return direction

    def report(self, iteration: int) -> bool:
        """每次迭代开始时调用；返回 True 表示状态被修改，需要重算"""
        return False

    def restore(self) -> None:
        """回到极小化起点

        供调用方在失败后回滚使用，:func:`~latticemin.optimize.driver.minimize`
        本身从不调用；不支持回滚的对象保留此默认实现。
        """
        raise NotImplementedError(f"{type(self).__name__} 不支持回滚")
