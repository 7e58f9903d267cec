"""CLI 场景通用工具

结果文件写出与常用绘图，供各个场景流水线复用。

Notes
-----
这些函数面向 CLI 级别的拼装逻辑，避免在核心库中引入场景耦合。
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable

import numpy as np


def write_json(path: str, data: dict) -> str:
    """以 UTF-8 写出缩进 JSON，返回路径。"""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def lattice_rows(lattice: np.ndarray) -> list:
    """内部列存储的晶格转为配置文件的行格式（每行一个晶格矢量）"""
    return np.asarray(lattice, dtype=np.float64).T.tolist()


def plot_energy_history(run_dir: str, energies: Iterable[float], unit: str = "Hartree") -> str:
    """绘制晶格极小化的能量收敛曲线。返回图路径。"""
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    ys = np.array(list(energies), dtype=np.float64)
    xs = np.arange(len(ys))
    fig, ax = plt.subplots(1, 1, figsize=(6.4, 4.0))
    ax.plot(xs, ys, marker="o", ms=3, color="#1f77b4")
    ax.set_xlabel("迭代")
    ax.set_ylabel(f"相关自由能 ({unit})")
    ax.set_title("晶格极小化能量收敛")
    ax.grid(True, alpha=0.3)
    os.makedirs(run_dir, exist_ok=True)
    path = os.path.join(run_dir, "energy_history.png")
    fig.savefig(path, dpi=300, bbox_inches="tight")
    plt.close(fig)
    return path
