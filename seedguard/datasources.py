"""Datasource extraction from cloud-init config documents.

Only three keys are looked at: ``datasource`` and ``reporting`` (both maps
keyed by datasource name) and ``datasource_list``. Everything else in the
document is ignored; it is never interpreted here even though cloud-init
itself may act on it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from .errors import ParseError
from .lib.yamlio import read_yaml
from .model import DatasourceSet

logger = logging.getLogger(__name__)


def _named_blocks(cfg: Dict[str, Any], key: str, path: Path) -> List[str]:
    block = cfg.get(key)
    if block is None:
        return []
    if not isinstance(block, dict):
        raise ParseError(f"{path}: '{key}' must be a mapping, got {type(block).__name__}")

    names: List[str] = []
    for name, settings in block.items():
        if not isinstance(name, str):
            raise ParseError(f"{path}: '{key}' keys must be strings, got {name!r}")
        if settings is not None and not isinstance(settings, dict):
            raise ParseError(f"{path}: '{key}.{name}' must be a mapping")
        names.append(name)
    return names


def _datasource_list(cfg: Dict[str, Any], path: Path) -> Optional[List[str]]:
    if "datasource_list" not in cfg or cfg["datasource_list"] is None:
        return None
    raw = cfg["datasource_list"]
    if not isinstance(raw, list):
        raise ParseError(f"{path}: 'datasource_list' must be a list, got {type(raw).__name__}")
    for ds in raw:
        if not isinstance(ds, str):
            raise ParseError(f"{path}: 'datasource_list' entries must be strings, got {ds!r}")
    return raw


def extract_datasources(path: str | Path) -> DatasourceSet:
    """Return the datasources a cloud-init config file refers to.

    Raises ParseError when the file is not YAML or when one of the inspected
    keys has the wrong shape, FilesystemError when it cannot be read.
    """

    p = Path(path)
    cfg = read_yaml(p)
    if cfg is None:
        cfg = {}
    if not isinstance(cfg, dict):
        raise ParseError(f"{p}: cloud-init config must be a mapping, got {type(cfg).__name__}")

    mentioned: Set[str] = set()
    for ds in _named_blocks(cfg, "datasource", p):
        mentioned.add(ds.upper())
    for ds in _named_blocks(cfg, "reporting", p):
        mentioned.add(ds.upper())

    explicitly_allowed = None
    none_allowed = False
    listed = _datasource_list(cfg, p)
    if listed is not None:
        if not listed:
            none_allowed = True
            explicitly_allowed = ()
        else:
            allowed = {ds.upper() for ds in listed}
            mentioned.update(allowed)
            explicitly_allowed = tuple(sorted(allowed))

    res = DatasourceSet(
        explicitly_allowed=explicitly_allowed,
        explicitly_none_allowed=none_allowed,
        mentioned=tuple(sorted(mentioned)),
    )
    logger.debug("Datasources in %s: %s", str(p), res)
    return res
