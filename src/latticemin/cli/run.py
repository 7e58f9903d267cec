#!/usr/bin/env python3
"""YAML 场景入口（CLI）

使用示例::

    python -m latticemin.cli.run -c examples/bcc_sodium.yaml

说明
----
- 本入口只负责 YAML 解析与场景调度；具体实现见 ``pipelines/*`` 模块。
"""

from __future__ import annotations

import argparse
import logging

from latticemin.core.config import ConfigManager
from latticemin.utils.utils import setup_logging

from .pipelines.lattice import run_lattice_pipeline


def main(argv: list[str] | None = None) -> int:
    """解析 YAML 并调度对应场景。"""
    ap = argparse.ArgumentParser(description="LatticeMin: YAML 驱动运行入口")
    ap.add_argument("-c", "--config", required=True, help="YAML配置文件路径")
    ap.add_argument("-v", "--verbose", action="store_true", help="控制台输出 DEBUG 日志")
    args = ap.parse_args(argv)

    cfg = ConfigManager(files=[args.config])
    seed = cfg.set_global_seed()

    name = cfg.get("run.name", cfg.get("scenario", "lattice"))
    outdir = cfg.make_output_dir(name)
    setup_logging(outdir, level=logging.DEBUG if args.verbose else logging.INFO)
    log = logging.getLogger(__name__)
    log.info(f"随机数种子: {seed}")
    cfg.snapshot(outdir)

    scenario = str(cfg.get("scenario", "lattice")).lower()
    if scenario in ("lattice", "lattice_minimize", "lattmin"):
        run_lattice_pipeline(cfg, outdir)
    else:
        raise ValueError(f"未知场景类型 scenario: {scenario}")

    log.info(f"完成。输出目录: {outdir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
