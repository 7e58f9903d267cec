#!/usr/bin/env python3
"""配置系统测试模块

测试ConfigManager的配置加载、合并、点路径访问和输出目录管理功能。
"""

import json
import os
from pathlib import Path

import pytest
import yaml

from latticemin.core.config import ConfigManager


class TestConfigManagerBasic:
    """基本配置加载测试"""

    def test_empty_config_initialization(self):
        """测试空配置初始化"""
        cfg = ConfigManager()
        assert cfg.data == {}
        assert cfg.sources == []

    def test_single_file_loading(self, tmp_path):
        """测试单个YAML文件加载"""
        config_file = tmp_path / "test.yaml"
        config_data = {
            "lattice": {"scale": 8.1},
            "lattice_minimize": {"fd_step": 1e-5, "dir_update_scheme": "polak-ribiere"},
        }
        config_file.write_text(yaml.dump(config_data))

        cfg = ConfigManager(files=[str(config_file)])
        assert cfg.get("lattice.scale") == 8.1
        assert cfg.get("lattice_minimize.dir_update_scheme") == "polak-ribiere"

    def test_multiple_file_merging(self, tmp_path):
        """测试多个配置文件合并"""
        base_config = tmp_path / "base.yaml"
        base_data = {
            "lattice_minimize": {"n_iterations": 50, "fd_step": 1e-5},
            "coulomb": {"truncation": "periodic"},
        }
        base_config.write_text(yaml.dump(base_data))

        override_config = tmp_path / "override.yaml"
        override_data = {
            "lattice_minimize": {"n_iterations": 10},  # 覆盖迭代数
            "coulomb": {"truncation": "slab", "direction": 2},
            "ionic_minimize": {"gtol": 1e-6},  # 新增配置
        }
        override_config.write_text(yaml.dump(override_data))

        cfg = ConfigManager(files=[str(base_config), str(override_config)])

        assert cfg.get("lattice_minimize.n_iterations") == 10
        assert cfg.get("lattice_minimize.fd_step") == 1e-5
        assert cfg.get("coulomb.truncation") == "slab"
        assert cfg.get("coulomb.direction") == 2
        assert cfg.get("ionic_minimize.gtol") == 1e-6
        assert len(cfg.sources) == 2

    def test_overrides_applied_last(self, tmp_path):
        config_file = tmp_path / "test.yaml"
        config_file.write_text(yaml.dump({"grid": {"samples": [8, 8, 8]}}))
        cfg = ConfigManager(
            files=[str(config_file)], overrides={"grid": {"samples": [4, 4, 4]}}
        )
        assert cfg.get("grid.samples") == [4, 4, 4]
        assert cfg.sources[-1] == "<overrides>"

    def test_nonexistent_file_raises(self):
        """显式给出的文件不存在时报错"""
        with pytest.raises(FileNotFoundError):
            ConfigManager(files=["nonexistent.yaml"])


class TestConfigManagerAccess:
    """配置访问和查询测试"""

    @pytest.fixture
    def sample_config(self, tmp_path):
        """创建示例配置"""
        config_file = tmp_path / "sample.yaml"
        config_data = {
            "scenario": "lattice",
            "lattice_minimize": {
                "max_allowed_strain": 0.5,
                "nested": {"deep": {"value": 42}},
            },
            "move_scale": [1.0, 1.0, 0.0],
        }
        config_file.write_text(yaml.dump(config_data))
        return ConfigManager(files=[str(config_file)])

    def test_simple_path_access(self, sample_config):
        assert sample_config.get("scenario") == "lattice"
        assert sample_config.get("lattice_minimize.max_allowed_strain") == 0.5

    def test_nested_path_access(self, sample_config):
        assert sample_config.get("lattice_minimize.nested.deep.value") == 42

    def test_default_value_handling(self, sample_config):
        """测试默认值处理"""
        assert sample_config.get("nonexistent.path") is None
        assert sample_config.get("nonexistent.path", "default") == "default"
        assert sample_config.get("lattice_minimize.fd_step", 1e-5) == 1e-5

    def test_section(self, sample_config):
        assert sample_config.section("lattice_minimize")["max_allowed_strain"] == 0.5
        assert sample_config.section("missing") == {}
        # 非字典值返回空字典
        assert sample_config.section("scenario") == {}

    def test_list_access(self, sample_config):
        assert sample_config.get("move_scale") == [1.0, 1.0, 0.0]


class TestConfigManagerOutput:
    """输出目录管理测试"""

    def test_output_directory_creation(self, tmp_path):
        cfg = ConfigManager(
            overrides={"run": {"output_dir": str(tmp_path / "runs" / "{name}_{timestamp}")}}
        )
        output_dir = cfg.make_output_dir("test_run")
        assert Path(output_dir).is_dir()
        assert "test_run" in output_dir

    def test_default_name_from_config(self, tmp_path):
        cfg = ConfigManager(
            overrides={"run": {"name": "na_bcc", "output_dir": str(tmp_path / "{name}")}}
        )
        assert cfg.make_output_dir() == str(tmp_path / "na_bcc")

    def test_config_snapshot_saving(self, tmp_path):
        """测试配置快照保存"""
        config_file = tmp_path / "test.yaml"
        config_file.write_text(yaml.dump({"test": {"value": 123}}))
        cfg = ConfigManager(files=[str(config_file)])

        original_cwd = os.getcwd()
        os.chdir(tmp_path)
        try:
            output_dir = cfg.make_output_dir("snapshot_test")
            cfg.snapshot(output_dir)
            with open(Path(output_dir) / "resolved_config.yaml") as f:
                assert yaml.safe_load(f)["test"]["value"] == 123
            with open(Path(output_dir) / "manifest.json") as f:
                assert json.load(f)["sources"] == [str(config_file)]
        finally:
            os.chdir(original_cwd)


class TestConfigManagerSeed:
    """随机种子设置测试"""

    def test_default_seed_setting(self):
        assert ConfigManager().set_global_seed() == 42

    def test_explicit_seed_setting(self, tmp_path):
        config_file = tmp_path / "seed.yaml"
        config_file.write_text(yaml.dump({"rng": {"global_seed": 12345}}))
        cfg = ConfigManager(files=[str(config_file)])
        assert cfg.set_global_seed() == 12345


class TestConfigManagerEdgeCases:
    """边界情况和错误处理测试"""

    def test_empty_yaml_file(self, tmp_path):
        empty_file = tmp_path / "empty.yaml"
        empty_file.write_text("")
        assert ConfigManager(files=[str(empty_file)]).data == {}

    def test_malformed_yaml_handling(self, tmp_path):
        bad_file = tmp_path / "bad.yaml"
        bad_file.write_text("invalid: yaml: content: [unclosed")
        with pytest.raises(yaml.YAMLError):
            ConfigManager(files=[str(bad_file)])

    def test_path_with_empty_segments(self, tmp_path):
        cfg = ConfigManager(overrides={"test": {"value": 123}})
        assert cfg.get("test..value") is None
        assert cfg.get(".test.value") is None
        assert cfg.get("test.value.") is None
