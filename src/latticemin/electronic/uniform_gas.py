r"""
均匀电子气

固定价电子数 :math:`N_e` 的均匀电子气，能量只依赖晶胞体积：

.. math::
    k_F = (3\pi^2 n)^{1/3},\qquad n = N_e/\Omega

.. math::
    E = N_e\left(\frac{3}{10}k_F^2 - \frac{3}{4\pi}k_F\right)

分别为动能与交换能。电子态不做优化，晶格变化后只重新求值。
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class UniformElectronGas:
    """均匀电子气能量

    Parameters
    ----------
    context : SimulationContext
        提供 ``geometry`` 与 ``ion_info``（价电子数）
    """

    def __init__(self, context) -> None:
        self.context = context

    def fermi_wavevector(self) -> float:
        n = self.context.ion_info.n_electrons / self.context.geometry.detR
        return float((3.0 * np.pi**2 * n) ** (1.0 / 3.0))

    def elec_energy_and_grad(self, ener) -> float:
        """按当前体积重算电子能量并写入 ``ener``

        能量与离子位置无关，因此不产生离子梯度。

        Returns
        -------
        float
            电子能量 ``Ekinetic + Exchange``
        """
        n_e = self.context.ion_info.n_electrons
        k_f = self.fermi_wavevector()
        ener["Ekinetic"] = n_e * 0.3 * k_f**2
        ener["Exchange"] = -n_e * 3.0 * k_f / (4.0 * np.pi)
        return ener["Ekinetic"] + ener["Exchange"]
