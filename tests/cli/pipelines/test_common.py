#!/usr/bin/env python3
"""Pipeline common模块测试"""

import json

import numpy as np

from latticemin.cli.pipelines.common import lattice_rows, plot_energy_history, write_json


def test_write_json_creates_parent(tmp_path):
    path = tmp_path / "nested" / "out.json"
    write_json(str(path), {"energy": -1.5, "label": "钠"})
    with open(path, encoding="utf-8") as f:
        assert json.load(f) == {"energy": -1.5, "label": "钠"}


def test_lattice_rows_transposes_columns():
    R = np.array([[8.0, 0.8, 0.0], [0.0, 8.0, 0.0], [0.0, 0.0, 8.0]])
    rows = lattice_rows(R)
    assert rows[1] == [0.8, 8.0, 0.0]


def test_plot_energy_history(tmp_path):
    path = plot_energy_history(str(tmp_path), [-1.0, -1.2, -1.25])
    assert (tmp_path / "energy_history.png").exists()
    assert path.endswith("energy_history.png")
