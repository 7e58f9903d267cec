# 文件名: utils.py
# 作者: Gilbert Young
# 修改日期: 2025-10-12
# 文件描述: 单位换算常量、日志配置与矩阵格式化等通用工具。

"""
工具模块

定义原子单位制下的常用换算常量，提供运行级日志配置 ``setup_logging``，
以及晶格/应变矩阵的文本格式化与 Voigt 表示转换。

Notes
-----
本项目内部统一采用 Hartree 原子单位（能量 Hartree，长度 bohr），
仅在输出报告时换算为 eV / Å。
"""

import logging
import os

import numpy as np

logger = logging.getLogger(__name__)

HARTREE_TO_EV: float = 27.211386245988
"""能量换算系数：Hartree → eV。"""

BOHR_TO_ANGSTROM: float = 0.529177210903
"""长度换算系数：bohr → Å。"""

HARTREE_PER_BOHR3_TO_GPA: float = 29421.015697
"""压强换算系数：Hartree/bohr³ → GPa。"""


def setup_logging(output_dir: str | None = None, level: int = logging.INFO) -> None:
    """配置根日志器

    控制台 handler 不存在时添加，存在时调整到期望级别；提供输出目录时
    额外追加一个写入 ``run.log`` 的文件 handler（始终记录 DEBUG 级别）。

    Parameters
    ----------
    output_dir : str | None, optional
        日志文件所在目录；为 ``None`` 时仅输出到控制台。
    level : int, optional
        控制台日志级别，默认 ``logging.INFO``。
    """
    root = logging.getLogger()
    root.setLevel(min(level, logging.DEBUG) if output_dir else level)
    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    has_stream = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root.handlers
    )
    if not has_stream:
        sh = logging.StreamHandler()
        sh.setLevel(level)
        sh.setFormatter(fmt)
        root.addHandler(sh)
    else:
        for h in root.handlers:
            if isinstance(h, logging.StreamHandler) and not isinstance(
                h, logging.FileHandler
            ):
                h.setLevel(level)
    if output_dir:
        try:
            os.makedirs(output_dir, exist_ok=True)
            fh = logging.FileHandler(
                os.path.join(output_dir, "run.log"), mode="w", encoding="utf-8"
            )
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(fmt)
            root.addHandler(fh)
        except OSError:
            logger.warning("无法创建日志文件处理器，继续仅输出到控制台。")


def format_matrix(matrix: np.ndarray, fmt: str = "{:12.6f}", indent: str = "  ") -> str:
    """将 3×3 矩阵格式化为多行文本（每行一对方括号）。"""
    matrix = np.asarray(matrix, dtype=np.float64)
    rows = []
    for row in matrix:
        rows.append(indent + "[ " + " ".join(fmt.format(v) for v in row) + " ]")
    return "\n".join(rows)


def strain_to_voigt(strain: np.ndarray) -> np.ndarray:
    r"""将对称应变张量转换为工程 Voigt 向量

    .. math::
        (\varepsilon_{11}, \varepsilon_{22}, \varepsilon_{33},
         2\varepsilon_{23}, 2\varepsilon_{13}, 2\varepsilon_{12})

    Parameters
    ----------
    strain : numpy.ndarray
        形状为 (3, 3) 的应变张量；非对称输入取其对称部分。

    Returns
    -------
    numpy.ndarray
        形状为 (6,) 的 Voigt 向量。
    """
    strain = np.asarray(strain, dtype=np.float64)
    if strain.shape != (3, 3):
        raise ValueError(f"应变张量必须是 3x3 矩阵，但得到形状 {strain.shape}")
    sym = 0.5 * (strain + strain.T)
    return np.array(
        [
            sym[0, 0],
            sym[1, 1],
            sym[2, 2],
            2.0 * sym[1, 2],
            2.0 * sym[0, 2],
            2.0 * sym[0, 1],
        ]
    )
