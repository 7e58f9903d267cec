"""能量累加器

各子系统（离子、静电、电子）把自己的能量分量写入同一个 ``Energies``
对象；晶格与离子极小化读取其总和作为相关自由能。
"""

import numpy as np


class Energies:
    """按名称累加的能量分量 (Hartree)

    Examples
    --------
    >>> ener = Energies()
    >>> ener["Eewald"] = -0.5
    >>> ener["Epair"] = 0.1
    >>> round(ener.total(), 6)
    -0.4
    """

    def __init__(self) -> None:
        self.components: dict[str, float] = {}

    def __getitem__(self, name: str) -> float:
        return self.components[name]

    def __setitem__(self, name: str, value: float) -> None:
        self.components[name] = float(value)

    def __contains__(self, name: str) -> bool:
        return name in self.components

    def total(self) -> float:
        """所有分量之和"""
        return float(sum(self.components.values()))

    def as_dict(self) -> dict[str, float]:
        return dict(self.components)

    def __repr__(self) -> str:
        parts = ", ".join(f"{k}={v:.10g}" for k, v in self.components.items())
        return f"Energies({parts})"


def relevant_free_energy(context) -> float:
    """读取上下文中当前的相关自由能（非有限值原样返回）"""
    energy = context.ener.total()
    return float(energy) if np.isfinite(energy) else float("nan")
