#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
晶格弛豫轨迹存储

参照 H5MD (HDF5 for Molecular Dynamics) 布局记录晶格极小化的每一次
迭代：晶格矩阵、应变张量、离子分数坐标与相关自由能。

文件结构::

    h5md/                      版本与创建者信息
    particles/all/species      种类符号
    particles/all/position/    value (n, N, 3) 分数坐标, step (n,)
    particles/all/box/edges/   value (n, 3, 3) 晶格矩阵（列为晶格矢量）
    observables/energy         (n,) Hartree
    observables/strain         (n, 3, 3)
    parameters/                reference_lattice 等元数据

Author: Gilbert Young
Created: 2025-10-12
"""

import h5py
import numpy as np
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class LatticeTrajectoryWriter:
    """
    晶格弛豫轨迹写入器

    Parameters
    ----------
    filename : str
        输出文件名（.h5或.hdf5扩展名）
    mode : str
        文件打开模式：'w'(覆盖), 'a'(追加), 'x'(创建新文件)
    compression : str, optional
        压缩算法：'gzip', 'lzf' 等
    compression_opts : int, optional
        压缩级别（gzip: 1-9）
    chunk_size : int, optional
        块大小，影响I/O性能

    Examples
    --------
    >>> writer = LatticeTrajectoryWriter('lattice.h5')
    >>> writer.initialize(n_atoms=2, reference_lattice=R0)
    >>> writer.write_frame(positions, R, step=0, energy=-1.0)
    >>> writer.close()
    """

    def __init__(
        self,
        filename: str,
        mode: str = 'w',
        compression: Optional[str] = 'gzip',
        compression_opts: Optional[int] = 4,
        chunk_size: int = 64
    ):
        self.filename = Path(filename)
        self.mode = mode
        self.compression = compression
        self.compression_opts = compression_opts
        self.chunk_size = chunk_size

        self.file = None
        self.n_atoms = None
        self.n_frames = 0
        self.initialized = False
        self.reference_lattice = None

    def open(self):
        """打开HDF5文件"""
        os.makedirs(self.filename.parent, exist_ok=True)
        self.file = h5py.File(self.filename, self.mode)
        logger.debug(f"打开HDF5文件: {self.filename} (mode={self.mode})")

    def initialize(
        self,
        n_atoms: int,
        atom_types: Optional[List[str]] = None,
        reference_lattice: Optional[np.ndarray] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """
        创建文件结构

        Parameters
        ----------
        n_atoms : int
            离子数量
        atom_types : list, optional
            种类符号列表
        reference_lattice : np.ndarray, optional
            参考晶格 R0；给出时由晶格自动推算应变 :math:`R_0^{-1}R - I`
        metadata : dict, optional
            额外的元数据
        """
        if self.file is None:
            self.open()
        self.n_atoms = n_atoms

        h5md = self.file.create_group('h5md')
        h5md.attrs['version'] = np.array([1, 1])
        creator = h5md.create_group('creator')
        creator.attrs['name'] = 'LatticeMin'
        creator.attrs['version'] = '1.0'

        particles = self.file.create_group('particles')
        self.observables_group = self.file.create_group('observables')
        self.parameters_group = self.file.create_group('parameters')

        all_atoms = particles.create_group('all')
        if atom_types:
            all_atoms.create_dataset(
                'species',
                data=[t.encode('utf-8') for t in atom_types],
                dtype=h5py.string_dtype(encoding='utf-8')
            )

        position_group = all_atoms.create_group('position')
        self.position_dataset = self._extendable(position_group, 'value', (n_atoms, 3))
        self.position_dataset.attrs['unit'] = 'fractional'
        self.step_dataset = position_group.create_dataset(
            'step', shape=(0,), maxshape=(None,), dtype=np.int64,
            chunks=(self.chunk_size,)
        )

        box_group = all_atoms.create_group('box')
        box_group.attrs['dimension'] = 3
        edges = box_group.create_group('edges')
        self.box_dataset = self._extendable(edges, 'value', (3, 3))
        self.box_dataset.attrs['unit'] = 'bohr'

        self.energy_dataset = self.observables_group.create_dataset(
            'energy', shape=(0,), maxshape=(None,), dtype=np.float64,
            chunks=(self.chunk_size,)
        )
        self.energy_dataset.attrs['unit'] = 'Hartree'
        self.strain_dataset = self._extendable(self.observables_group, 'strain', (3, 3))

        if reference_lattice is not None:
            self.reference_lattice = np.array(reference_lattice, dtype=np.float64)
            self.parameters_group.create_dataset(
                'reference_lattice', data=self.reference_lattice
            )
        if metadata:
            for key, value in metadata.items():
                self.parameters_group.attrs[key] = value
        self.parameters_group.attrs['created'] = datetime.now().isoformat()
        self.parameters_group.attrs['n_atoms'] = n_atoms

        self.initialized = True
        logger.info(f"初始化晶格轨迹文件: {self.filename} ({n_atoms} 个离子)")

    def _extendable(self, group, name, frame_shape):
        return group.create_dataset(
            name,
            shape=(0,) + frame_shape,
            maxshape=(None,) + frame_shape,
            dtype=np.float64,
            chunks=(self.chunk_size,) + frame_shape,
            compression=self.compression,
            compression_opts=self.compression_opts
        )

    def write_frame(
        self,
        positions: np.ndarray,
        lattice: np.ndarray,
        step: int,
        energy: Optional[float] = None,
        strain: Optional[np.ndarray] = None
    ):
        """
        写入一次迭代

        Parameters
        ----------
        positions : np.ndarray
            离子分数坐标 (n_atoms, 3)
        lattice : np.ndarray
            晶格矩阵 (3, 3)，列为晶格矢量
        step : int
            迭代序号
        energy : float, optional
            相关自由能 (Hartree)，缺省记为 NaN
        strain : np.ndarray, optional
            应变张量；缺省时由 ``reference_lattice`` 推算，两者都没有时记为 NaN
        """
        if not self.initialized:
            raise RuntimeError("必须先调用initialize()初始化文件结构")

        lattice = np.asarray(lattice, dtype=np.float64)
        if strain is None:
            if self.reference_lattice is not None:
                strain = np.linalg.solve(self.reference_lattice, lattice) - np.eye(3)
            else:
                strain = np.full((3, 3), np.nan)

        idx = self.n_frames
        for dataset, value in (
            (self.position_dataset, np.asarray(positions, dtype=np.float64)),
            (self.box_dataset, lattice),
            (self.strain_dataset, np.asarray(strain, dtype=np.float64)),
        ):
            dataset.resize((idx + 1,) + dataset.shape[1:])
            dataset[idx] = value
        self.step_dataset.resize((idx + 1,))
        self.step_dataset[idx] = step
        self.energy_dataset.resize((idx + 1,))
        self.energy_dataset[idx] = np.nan if energy is None else energy

        self.n_frames += 1
        if self.n_frames % self.chunk_size == 0:
            self.file.flush()

    def close(self):
        """关闭文件"""
        if self.file:
            self.file.attrs['n_frames'] = self.n_frames
            self.file.flush()
            self.file.close()
            self.file = None
            logger.info(f"关闭晶格轨迹文件，共写入{self.n_frames}帧")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def load_lattice_trajectory(filename: str) -> Dict[str, Any]:
    """
    读取晶格轨迹文件

    Returns
    -------
    dict
        ``positions``、``lattice``、``strain``、``energy``、``step``
        数组，以及可选的 ``species`` 与 ``reference_lattice``
    """
    path = Path(filename)
    if not path.exists():
        raise FileNotFoundError(f"轨迹文件不存在: {path}")
    with h5py.File(path, 'r') as f:
        data = {
            'positions': f['particles/all/position/value'][()],
            'step': f['particles/all/position/step'][()],
            'lattice': f['particles/all/box/edges/value'][()],
            'energy': f['observables/energy'][()],
            'strain': f['observables/strain'][()],
        }
        if 'particles/all/species' in f:
            data['species'] = [
                s.decode('utf-8') if isinstance(s, bytes) else s
                for s in f['particles/all/species'][()]
            ]
        if 'parameters/reference_lattice' in f:
            data['reference_lattice'] = f['parameters/reference_lattice'][()]
    return data
