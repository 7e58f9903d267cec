"""晶格极小化场景流水线"""

from __future__ import annotations

import logging
import os

import numpy as np

from ...core.context import SimulationContext
from ...core.energies import relevant_free_energy
from ...lattice.minimizer import LatticeMinimizer
from ...utils.trajectory import LatticeTrajectoryWriter
from ...utils.utils import (
    BOHR_TO_ANGSTROM,
    HARTREE_TO_EV,
    strain_to_voigt,
)
from .common import lattice_rows, plot_energy_history, write_json


def run_lattice_pipeline(cfg, outdir: str) -> dict:
    """构建上下文，运行晶格极小化，并导出结果 JSON、能量曲线与 HDF5 轨迹。

    Returns
    -------
    dict
        写入 ``lattice_results.json`` 的结果字典
    """
    logger = logging.getLogger(__name__)
    ctx = SimulationContext.from_config(cfg)
    minimizer = LatticeMinimizer(ctx)

    writer = None
    h5_name = cfg.get("dump.lattice.hdf5", None)
    if h5_name:
        writer = LatticeTrajectoryWriter(os.path.join(outdir, str(h5_name)))
        writer.initialize(
            n_atoms=ctx.ions.num_atoms,
            atom_types=ctx.ions.symbols,
            reference_lattice=minimizer.original_lattice,
            metadata={"n_dim": minimizer.n_dim},
        )
        ctx.dumper.attach_trajectory(writer)

    e0 = relevant_free_energy(ctx)
    v0 = float(ctx.geometry.volume)
    try:
        result = minimizer.minimize()
    finally:
        if writer is not None:
            writer.close()

    e1 = relevant_free_energy(ctx)
    v1 = float(ctx.geometry.volume)
    strain = minimizer.strain

    try:
        plot_energy_history(outdir, result.history)
    except Exception as e:
        logger.debug(f"能量曲线绘制失败: {e}")

    snapshot = {
        "converged": bool(result.converged),
        "reason": result.reason,
        "n_iterations": int(result.n_iterations),
        "n_dim": int(minimizer.n_dim),
        "nested_ionic_relaxations": int(ctx.relaxation_count),
        "initial": {
            "energy_hartree": float(e0),
            "volume_bohr3": v0,
            "lattice_vectors_bohr": lattice_rows(minimizer.original_lattice),
        },
        "final": {
            "energy_hartree": float(e1),
            "energy_eV": float(e1 * HARTREE_TO_EV),
            "volume_bohr3": v1,
            "volume_A3": v1 * BOHR_TO_ANGSTROM**3,
            "lattice_vectors_bohr": lattice_rows(ctx.geometry.R),
            "strain": strain.tolist(),
            "strain_voigt": strain_to_voigt(strain).tolist(),
            "energy_components": ctx.ener.as_dict(),
            "symbols": ctx.ions.symbols,
            "positions_fractional": ctx.ions.get_positions().tolist(),
        },
        "energy_history_hartree": [float(e) for e in result.history],
        "strain_basis": [b.tolist() for b in minimizer.strain_basis],
    }
    write_json(os.path.join(outdir, "lattice_results.json"), snapshot)
    logger.info(
        f"晶格极小化完成: 收敛={result.converged}, E0={e0:.8f}→E1={e1:.8f} Eh, "
        f"V0={v0:.4f}→V1={v1:.4f} bohr³, |ε|={np.linalg.norm(strain):.4e}"
    )
    return snapshot
