#!/usr/bin/env python3
"""离子结构测试模块

测试 Atom 与 IonicStructure 的构造、分数坐标读写与错误处理。
"""

import numpy as np
import pytest

from latticemin.core.structure import Atom, IonicStructure


class TestAtom:
    """测试Atom"""

    def test_basic_construction(self):
        atom = Atom(id=1, symbol="Na", position=[0, 0.5, 0])
        assert atom.id == 1
        assert atom.symbol == "Na"
        assert atom.movable
        assert atom.position.dtype == np.float64

    def test_invalid_position(self):
        with pytest.raises(ValueError):
            Atom(0, "Na", [0.0, 0.0])

    def test_move_by(self):
        atom = Atom(0, "Na", [0.1, 0.2, 0.3])
        atom.move_by([0.1, 0.0, -0.1])
        np.testing.assert_allclose(atom.position, [0.2, 0.2, 0.2])
        with pytest.raises(ValueError):
            atom.move_by([1.0])

    def test_copy_is_deep(self):
        atom = Atom(0, "Na", [0.1, 0.2, 0.3], movable=False)
        clone = atom.copy()
        clone.position[0] = 0.9
        assert atom.position[0] == 0.1
        assert clone.movable is False


class TestIonicStructure:
    """测试IonicStructure"""

    def test_positions_roundtrip(self, bcc_sodium_ions):
        positions = bcc_sodium_ions.get_positions()
        positions[1] += 0.01
        bcc_sodium_ions.set_positions(positions)
        np.testing.assert_allclose(bcc_sodium_ions.atoms[1].position, [0.51, 0.51, 0.51])

    def test_set_positions_shape_check(self, bcc_sodium_ions):
        with pytest.raises(ValueError):
            bcc_sodium_ions.set_positions(np.zeros((3, 3)))

    def test_cartesian_positions(self):
        ions = IonicStructure([Atom(0, "Na", [0.5, 0.5, 0.0])])
        lattice = np.array([[4.0, 1.0, 0.0], [0.0, 4.0, 0.0], [0.0, 0.0, 6.0]])
        np.testing.assert_allclose(ions.get_cartesian_positions(lattice), [[2.5, 2.0, 0.0]])

    def test_masks_and_symbols(self):
        ions = IonicStructure(
            [Atom(0, "Na", [0, 0, 0], movable=False), Atom(1, "Mg", [0.5, 0.5, 0.5])]
        )
        assert ions.num_atoms == 2
        assert ions.symbols == ["Na", "Mg"]
        np.testing.assert_array_equal(ions.movable_mask, [False, True])

    def test_empty_and_duplicate(self):
        with pytest.raises(ValueError):
            IonicStructure([])
        with pytest.raises(ValueError):
            IonicStructure([Atom(0, "Na", [0, 0, 0]), Atom(0, "Na", [0.5, 0, 0])])

    def test_copy_independent(self, bcc_sodium_ions):
        clone = bcc_sodium_ions.copy()
        clone.set_positions(np.zeros((2, 3)))
        np.testing.assert_allclose(bcc_sodium_ions.atoms[1].position, [0.5, 0.5, 0.5])
