"""
Case loaders: bundled IEEE test networks and case files on disk.
"""
from __future__ import annotations

import logging
from pathlib import Path

import pandapower as pp
import pandapower.converter as pc
import pandapower.networks as pn

from .model import NetworkModel

logger = logging.getLogger(__name__)


# ── Network loader ─────────────────────────────────────────────────

NETWORK_LOADERS = {
    "case9": pn.case9,
    "case14": pn.case14,
    "case30": pn.case30,
    "case39": pn.case39,
    "case57": pn.case57,
    "case118": pn.case118,
}

CASE_FILE_SUFFIXES = (".json", ".m", ".mat")


def load_network(name: str) -> pp.pandapowerNet:
    """Load a fresh copy of a standard IEEE test network."""
    if name not in NETWORK_LOADERS:
        raise ValueError(f"Unknown network: {name}. Choose from {list(NETWORK_LOADERS)}")
    return NETWORK_LOADERS[name]()


def load_case_file(path: str | Path) -> pp.pandapowerNet:
    """
    Load a network from a pandapower JSON file or a MATPOWER case
    (``.m`` or ``.mat``).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Case file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".json":
        net = pp.from_json(str(path))
    elif suffix in (".m", ".mat"):
        net = pc.from_mpc(str(path))
    else:
        raise ValueError(
            f"Unsupported case file type '{suffix}'. Expected one of {list(CASE_FILE_SUFFIXES)}"
        )
    if not getattr(net, "name", ""):
        net.name = path.stem
    logger.info("Loaded case file %s (%d buses)", path, len(net.bus))
    return net


def load_model(name: str) -> NetworkModel:
    """Load a bundled test network straight into a NetworkModel."""
    return NetworkModel.from_pandapower(load_network(name), name=name)
