"""离子种类参数

每个种类由价电荷 ``Z``、空芯半径 ``r_core``、质量与 Born–Mayer
短程排斥参数描述。质量仅用于报告，不参与零温极小化。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from latticemin.core.errors import LatticeConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class SpeciesInfo:
    """离子种类

    Attributes
    ----------
    symbol : str
        种类符号
    Z : float
        价电荷（同时是局域赝势强度与贡献的价电子数）
    r_core : float
        Ashcroft 空芯半径 (bohr)，0 表示裸库仑势
    mass : float
        质量 (amu)
    pair_A : float
        Born–Mayer 前置因子 A (Hartree)，0 表示不含短程排斥
    pair_rho : float
        Born–Mayer 衰减长度 ρ (bohr)
    """

    symbol: str
    Z: float
    r_core: float = 0.0
    mass: float = 1.0
    pair_A: float = 0.0
    pair_rho: float = 1.0

    def __post_init__(self) -> None:
        if self.Z <= 0:
            raise LatticeConfigurationError(f"种类 {self.symbol} 的价电荷 Z 必须为正")
        if self.r_core < 0:
            raise LatticeConfigurationError(f"种类 {self.symbol} 的 r_core 不能为负")
        if self.pair_A < 0 or self.pair_rho <= 0:
            raise LatticeConfigurationError(
                f"种类 {self.symbol} 的 Born–Mayer 参数非法: A={self.pair_A}, rho={self.pair_rho}"
            )

    @classmethod
    def from_config(cls, symbol: str, values: dict[str, Any]) -> "SpeciesInfo":
        pair = dict(values.get("pair") or {})
        return cls(
            symbol=symbol,
            Z=float(values["Z"]),
            r_core=float(values.get("r_core", 0.0)),
            mass=float(values.get("mass", 1.0)),
            pair_A=float(pair.get("A", 0.0)),
            pair_rho=float(pair.get("rho", 1.0)),
        )


def load_species(section: dict[str, Any] | None) -> dict[str, SpeciesInfo]:
    """从配置 ``species`` 段构建 {符号: SpeciesInfo}"""
    if not section:
        raise LatticeConfigurationError("配置中缺少 species 定义")
    species = {}
    for symbol, values in section.items():
        try:
            species[symbol] = SpeciesInfo.from_config(symbol, values or {})
        except KeyError as e:
            raise LatticeConfigurationError(f"种类 {symbol} 缺少必需字段 {e}") from e
    logger.debug(f"已加载 {len(species)} 个离子种类: {list(species)}")
    return species
