"""配置加载模块

提供轻量的 YAML 配置加载与工具函数：

- 递归合并多份 YAML（后者覆盖前者）
- 点路径访问（如 ``lattice_minimize.fd_step``）
- 统一设置随机种子（numpy/random），有限差分梯度测试的随机方向依赖于此
- 基于模板创建输出目录并保存配置快照

Notes
-----
类型化的参数记录（晶格极小化、离子弛豫等）见
:mod:`latticemin.core.parameters`，它们从本模块的 ``ConfigManager`` 构建。
"""

from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import random as _random
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import yaml

logger = logging.getLogger(__name__)


def _deep_update(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_update(out[k], v)
        else:
            out[k] = v
    return out


def _get_by_path(d: dict, path: str, default: Any = None) -> Any:
    cur = d
    for key in path.split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


@dataclass
class _Resolved:
    data: dict
    sources: list[str]


class ConfigManager:
    """配置管理器

    加载一组 YAML 配置文件并进行递归合并，提供点路径访问与常用工具。

    Parameters
    ----------
    files : Iterable[str] | None, optional
        需要加载的 YAML 文件列表，后者覆盖前者；若为 ``None`` 则只构建空配置。
    overrides : dict | None, optional
        在全部文件之后合并的字典（便于脚本与测试直接注入配置）。

    Raises
    ------
    FileNotFoundError
        显式给出的配置文件不存在。
    """

    def __init__(
        self, files: Iterable[str] | None = None, overrides: dict | None = None
    ) -> None:
        self._resolved = self._load_all(files)
        if overrides:
            self._resolved.data = _deep_update(self._resolved.data, overrides)
            self._resolved.sources.append("<overrides>")

    def _load_all(self, files: Iterable[str] | None) -> _Resolved:
        data: dict[str, Any] = {}
        sources: list[str] = []
        for p in files or []:
            path = Path(p)
            if not path.exists():
                raise FileNotFoundError(f"配置文件不存在: {path}")
            with open(path, encoding="utf-8") as f:
                ov = yaml.safe_load(f) or {}
            data = _deep_update(data, ov)
            sources.append(str(path))
            logger.debug(f"已加载配置文件: {path}")
        return _Resolved(data=data, sources=sources)

    @property
    def data(self) -> dict:
        """获取合并后的配置数据字典。"""
        return self._resolved.data

    @property
    def sources(self) -> list[str]:
        """参与合并的配置来源列表。"""
        return list(self._resolved.sources)

    def get(self, path: str, default: Any | None = None) -> Any:
        """获取配置值（点路径）

        Parameters
        ----------
        path : str
            点路径键名，例如 ``"lattice_minimize.max_allowed_strain"``。
        default : Any, optional
            当键不存在时返回的默认值。

        Returns
        -------
        Any
            对应的配置值或 ``default``。
        """
        return _get_by_path(self._resolved.data, path, default)

    def section(self, path: str) -> dict:
        """获取子字典；不存在或不是字典时返回空字典。"""
        value = self.get(path, None)
        return dict(value) if isinstance(value, dict) else {}

    def set_global_seed(self, seed: int | None = None) -> int:
        """统一设置随机种子

        Parameters
        ----------
        seed : int | None, optional
            若为 ``None``，则读取 ``rng.global_seed``（默认 42）。

        Returns
        -------
        int
            实际使用的种子值。
        """
        if seed is None:
            seed = int(self.get("rng.global_seed", 42))
        np.random.seed(seed)
        _random.seed(seed)
        return seed

    def make_output_dir(self, name: str | None = None) -> str:
        """按模板 ``run.output_dir`` 创建输出目录

        模板支持 ``{name}`` 与 ``{timestamp}`` 占位符，默认
        ``runs/{name}_{timestamp}``。

        Parameters
        ----------
        name : str | None, optional
            运行名；若为 ``None``，则读取 ``run.name``（默认 ``"lattice"``）。

        Returns
        -------
        str
            创建的输出目录路径。
        """
        pattern = str(self.get("run.output_dir", "runs/{name}_{timestamp}"))
        name = name or str(self.get("run.name", "lattice"))
        ts = _dt.datetime.now().strftime("%Y%m%d_%H%M%S")
        out = pattern.format(name=name, timestamp=ts)
        os.makedirs(out, exist_ok=True)
        return out

    def snapshot(self, output_dir: str) -> None:
        """在输出目录写入 ``resolved_config.yaml`` 与 ``manifest.json``。"""
        try:
            path = Path(output_dir) / "resolved_config.yaml"
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(
                    self._resolved.data, f, allow_unicode=True, sort_keys=True
                )
            manifest = {
                "timestamp": _dt.datetime.now().isoformat(),
                "sources": self._resolved.sources,
            }
            with open(Path(output_dir) / "manifest.json", "w", encoding="utf-8") as f:
                json.dump(manifest, f, indent=2, ensure_ascii=False)
        except OSError as e:
            # 快照失败不阻断主流程
            logger.warning(f"配置快照写入失败: {e}")
