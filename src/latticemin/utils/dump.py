"""输出钩子

``Dumper`` 按 ``DumpFrequency`` 保存回调，极小化过程在相应时机调用
``dump``：晶格极小化每次 ``report`` 触发 ``LATTICE``，运行结束触发
``END``。回调签名为 ``callback(context, iteration)``。
"""

import enum
import logging

from latticemin.core.energies import relevant_free_energy

logger = logging.getLogger(__name__)


class DumpFrequency(enum.Enum):
    LATTICE = "lattice"
    END = "end"


class Dumper:
    """按频率分组的输出回调集合"""

    def __init__(self) -> None:
        self._callbacks = {freq: [] for freq in DumpFrequency}

    def register(self, freq: DumpFrequency, callback) -> None:
        self._callbacks[DumpFrequency(freq)].append(callback)

    def dump(self, freq: DumpFrequency, context, iteration: int) -> None:
        freq = DumpFrequency(freq)
        callbacks = self._callbacks[freq]
        if callbacks:
            logger.debug(f"dump {freq.value} @ iteration {iteration}: {len(callbacks)} 个回调")
        for callback in callbacks:
            callback(context, iteration)

    def attach_trajectory(self, writer, freq: DumpFrequency = DumpFrequency.LATTICE) -> None:
        """把 ``LatticeTrajectoryWriter`` 注册为输出回调"""

        def _write(context, iteration):
            writer.write_frame(
                context.ions.get_positions(),
                context.geometry.R,
                step=iteration,
                energy=relevant_free_energy(context),
            )

        self.register(freq, _write)
