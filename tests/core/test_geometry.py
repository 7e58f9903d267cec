#!/usr/bin/env python3
"""网格几何与对称操作测试模块"""

import numpy as np
import pytest

from latticemin.core.errors import LatticeConfigurationError
from latticemin.core.geometry import GeometryContext
from latticemin.core.symmetry import Symmetries, integer_inverse


class TestGeometryContext:
    """晶格派生量"""

    @pytest.fixture
    def triclinic(self):
        return np.array([[6.0, 1.0, 0.5], [0.0, 5.5, 0.8], [0.0, 0.0, 7.0]])

    def test_reciprocal_lattice(self, triclinic):
        geometry = GeometryContext(triclinic, samples=(4, 4, 4))
        np.testing.assert_allclose(geometry.G @ geometry.R, 2 * np.pi * np.eye(3), atol=1e-12)
        assert geometry.detR == pytest.approx(6.0 * 5.5 * 7.0)
        assert geometry.volume == geometry.detR

    def test_index_table_symmetric_without_origin(self):
        geometry = GeometryContext(8.0 * np.eye(3), samples=(5, 4, 3))
        iG = geometry.iG
        assert not np.any(np.all(iG == 0, axis=1))
        keys = {tuple(v) for v in iG}
        assert all(tuple(-v) in keys for v in iG)
        assert len(iG) == 5 * 3 * 3 - 1

    def test_update_keeps_index_table(self, triclinic):
        geometry = GeometryContext(triclinic, samples=(4, 4, 4))
        iG = geometry.iG.copy()
        geometry.update(1.1 * triclinic)
        np.testing.assert_array_equal(geometry.iG, iG)
        assert geometry.n_updates == 2
        # |g|² 随晶格放大按 1/s² 缩小
        reference = GeometryContext(triclinic, samples=(4, 4, 4))
        np.testing.assert_allclose(geometry.G2, reference.G2 / 1.21)

    def test_sampling_vectors(self, triclinic):
        geometry = GeometryContext(triclinic, samples=(2, 4, 8))
        np.testing.assert_allclose(geometry.h[1], triclinic[:, 1] / 4)

    def test_lattice_lengths(self):
        geometry = GeometryContext(np.diag([3.0, 4.0, 5.0]), samples=(2, 2, 2))
        np.testing.assert_allclose(geometry.lattice_lengths(), [3.0, 4.0, 5.0])

    @pytest.mark.parametrize(
        "lattice",
        [np.eye(2), np.diag([1.0, 1.0, -1.0]), np.full((3, 3), np.nan), np.zeros((3, 3))],
    )
    def test_invalid_lattice(self, lattice):
        with pytest.raises(LatticeConfigurationError):
            GeometryContext(lattice)

    def test_invalid_samples(self):
        with pytest.raises(LatticeConfigurationError):
            GeometryContext(np.eye(3), samples=(0, 2, 2))


class TestSymmetries:
    """对称矩阵集合"""

    def test_cubic_group_order(self):
        assert len(Symmetries.cubic()) == 48

    def test_generators_closure(self, tetragonal_symmetries):
        assert len(tetragonal_symmetries) == 8

    def test_integer_inverse(self):
        m = np.array([[0, -1, 0], [1, 0, 0], [0, 0, 1]])
        np.testing.assert_array_equal(integer_inverse(m) @ m, np.eye(3))

    def test_matrices_are_copies(self):
        sym = Symmetries.identity()
        sym.get_matrices()[0][0, 0] = 5
        np.testing.assert_array_equal(sym.get_matrices()[0], np.eye(3))

    @pytest.mark.parametrize(
        "matrices",
        [[], [np.eye(2)], [0.5 * np.eye(3)], [2 * np.eye(3)]],
    )
    def test_invalid_matrices(self, matrices):
        with pytest.raises(LatticeConfigurationError):
            Symmetries(matrices)

    def test_from_config(self):
        assert len(Symmetries.from_config(None)) == 1
        assert len(Symmetries.from_config("identity")) == 1
        assert len(Symmetries.from_config("Cubic")) == 48
        explicit = Symmetries.from_config([np.eye(3).tolist(), (-np.eye(3)).tolist()])
        assert len(explicit) == 2
        with pytest.raises(LatticeConfigurationError):
            Symmetries.from_config("hexagonal")

    def test_infinite_generator_rejected(self):
        shear = [[1, 1, 0], [0, 1, 0], [0, 0, 1]]
        with pytest.raises(LatticeConfigurationError):
            Symmetries.from_generators([shear])
