#!/usr/bin/env python3
"""CLI run模块测试

测试YAML配置驱动的CLI入口：参数解析、场景调度与端到端晶格极小化。
"""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
import yaml

from latticemin.cli.run import main
from latticemin.utils.trajectory import load_lattice_trajectory


@pytest.fixture(autouse=True)
def _detach_file_handlers():
    """移除 setup_logging 追加的文件 handler，避免跨测试累积"""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def base_config_data(tmp_path):
    """单个钠离子的小体系，迭代数很少"""
    return {
        "scenario": "lattice",
        "run": {"name": "cli_test", "output_dir": str(tmp_path / "runs" / "{name}")},
        "lattice": {"vectors": [[1, 0, 0], [0, 1, 0], [0, 0, 1]], "scale": 7.5},
        "species": {"Na": {"Z": 1, "r_core": 1.66}},
        "ions": [{"species": "Na", "position": [0, 0, 0], "movable": False}],
        "symmetries": "cubic",
        "grid": {"samples": [4, 4, 4]},
        "lattice_minimize": {"n_iterations": 2, "fd_step": 1e-4},
    }


def write_config(tmp_path, data, name="config.yaml"):
    path = tmp_path / name
    path.write_text(yaml.dump(data))
    return str(path)


class TestCLIRunBasic:
    """CLI基本功能测试"""

    def test_missing_config_argument(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2  # argparse错误码

    def test_nonexistent_config_file(self):
        with pytest.raises(FileNotFoundError):
            main(["-c", "nonexistent.yaml"])

    @pytest.mark.parametrize("scenario", ["lattice", "lattice_minimize", "LattMin"])
    def test_scenario_dispatch(self, tmp_path, base_config_data, scenario):
        config = write_config(tmp_path, {**base_config_data, "scenario": scenario})
        with patch("latticemin.cli.run.run_lattice_pipeline") as mock_pipeline:
            assert main(["-c", config]) == 0
            mock_pipeline.assert_called_once()

    def test_unknown_scenario_handling(self, tmp_path, base_config_data):
        config = write_config(tmp_path, {**base_config_data, "scenario": "nvt"})
        with pytest.raises(ValueError, match="未知场景类型"):
            main(["-c", config])

    def test_output_directory_and_snapshot(self, tmp_path, base_config_data):
        config = write_config(tmp_path, base_config_data)
        with patch("latticemin.cli.run.run_lattice_pipeline"):
            main(["-c", config])
        outdir = tmp_path / "runs" / "cli_test"
        assert (outdir / "resolved_config.yaml").exists()
        assert (outdir / "manifest.json").exists()
        assert (outdir / "run.log").exists()


class TestLatticePipeline:
    """端到端晶格极小化"""

    def test_results_written(self, tmp_path, base_config_data):
        data = {**base_config_data, "dump": {"lattice": {"hdf5": "lattice.h5"}}}
        config = write_config(tmp_path, data)
        assert main(["-c", config]) == 0

        outdir = Path(tmp_path / "runs" / "cli_test")
        with open(outdir / "lattice_results.json", encoding="utf-8") as f:
            results = json.load(f)
        assert results["n_dim"] == 1
        assert np.isfinite(results["final"]["energy_hartree"])
        assert results["nested_ionic_relaxations"] > 0
        assert len(results["energy_history_hartree"]) == results["n_iterations"] + 1
        # 立方对称下应变保持各向同性
        strain = results["final"]["strain"]
        assert strain[0][0] == pytest.approx(strain[1][1]) == pytest.approx(strain[2][2])

        trajectory = load_lattice_trajectory(str(outdir / "lattice.h5"))
        assert trajectory["lattice"].shape[0] == results["n_iterations"] + 1
