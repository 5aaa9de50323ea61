from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .datasources import extract_datasources
from .errors import ConfigurationError, FilesystemError
from .lib.env import Paths, writable_defaults_dir
from .lib.fsutil import copy_file, ensure_dir, write_file_atomic
from .model import DatasourceSet, TrustGrade

logger = logging.getLogger(__name__)

GADGET_CLOUD_CONF = "cloud.conf"
GADGET_CFG_NAME = "80_device_gadget.cfg"
# sorts after the gadget config so seed values win when cloud-init merges
SEED_CFG_PREFIX = "90_"


@dataclass(frozen=True)
class InstallReport:
    grade: Optional[TrustGrade]
    disabled: bool = False
    installed: Tuple[Path, ...] = ()
    gadget_datasources: Optional[DatasourceSet] = None


def has_gadget_cloud_conf(gadget_dir: Union[str, Path, None]) -> bool:
    if not gadget_dir:
        return False
    return (Path(gadget_dir) / GADGET_CLOUD_CONF).is_file()


def disable_cloud_init(root: Union[str, Path], *, dry_run: bool = False) -> Path:
    """Disable cloud-init permanently under ``root``.

    Writes the empty ``etc/cloud/cloud-init.disabled`` file, which stops
    cloud-init-generator from triggering new cloud-init runs. root can still
    run cloud-init by hand; nothing here prevents that.
    """

    paths = Paths.at(root)
    if dry_run:
        logger.info("Would write %s", str(paths.disabled_file))
        return paths.disabled_file

    ensure_dir(paths.cloud_dir, what="cloud config dir")
    try:
        write_file_atomic(paths.disabled_file, "")
    except FilesystemError as e:
        raise FilesystemError(f"cannot disable cloud-init: {e}") from e
    logger.info("cloud-init disabled via %s", str(paths.disabled_file))
    return paths.disabled_file


def install_seed_config_dir(
    src: Union[str, Path],
    root: Union[str, Path],
    *,
    prefix: str = SEED_CFG_PREFIX,
    dry_run: bool = False,
) -> List[Path]:
    """Copy every ``*.cfg`` in ``src`` into ``etc/cloud/cloud.cfg.d`` of ``root``.

    Files keep their name with ``prefix`` prepended. Nothing is created when
    there is nothing to copy.
    """

    ccl = sorted(Path(src).glob("*.cfg"))
    if not ccl:
        logger.info("No cloud-init config found in %s", str(src))
        return []

    cfg_dir = Paths.at(root).cloud_cfg_dir
    if not dry_run:
        ensure_dir(cfg_dir, what="cloud config dir")

    installed: List[Path] = []
    for cc in ccl:
        installed.append(copy_file(cc, cfg_dir / (prefix + cc.name), dry_run=dry_run))
    return installed


def install_gadget_config(
    src: Union[str, Path],
    root: Union[str, Path],
    *,
    dry_run: bool = False,
) -> Tuple[Path, DatasourceSet]:
    """Install the gadget cloud.conf as ``80_device_gadget.cfg``.

    The document is parsed before anything is copied, so a malformed gadget
    config leaves the target untouched.
    """

    datasources = extract_datasources(src)

    cfg_dir = Paths.at(root).cloud_cfg_dir
    if not dry_run:
        ensure_dir(cfg_dir, what="cloud config dir")
    dst = copy_file(src, cfg_dir / GADGET_CFG_NAME, dry_run=dry_run)
    return dst, datasources


def install_config(
    grade: Union[TrustGrade, str, None],
    *,
    target_root: Union[str, Path, None],
    gadget_dir: Union[str, Path, None] = None,
    seed_dir: Union[str, Path, None] = None,
    allow_cloud_init: bool = True,
    dry_run: bool = False,
) -> InstallReport:
    """Decide which cloud-init config the image gets and install it.

    Gadget config is always installed. Seed config is only installed for
    grade dangerous; secured never takes it and signed is not supported yet.
    """

    if not target_root:
        raise ConfigurationError("unable to configure cloud-init, missing target dir")

    root = writable_defaults_dir(target_root)

    if not allow_cloud_init:
        disable_cloud_init(root, dry_run=dry_run)
        return InstallReport(grade=None, disabled=True)

    model_grade = TrustGrade.parse(grade)

    installed: List[Path] = []
    gadget_datasources = None
    if has_gadget_cloud_conf(gadget_dir):
        # TODO: cross-check seed config against gadget_datasources once signed filtering exists
        dst, gadget_datasources = install_gadget_config(
            Path(gadget_dir) / GADGET_CLOUD_CONF, root, dry_run=dry_run
        )
        installed.append(dst)
        logger.info("Installed gadget cloud-init config (datasources=%s)", list(gadget_datasources.mentioned))

    if model_grade is TrustGrade.SECURED:
        logger.info("Grade secured: only gadget cloud-init config is allowed")
    elif model_grade is TrustGrade.SIGNED:
        if seed_dir:
            logger.warning("Grade signed: filtering of seed cloud-init config is not supported, skipping %s", str(seed_dir))
    elif model_grade is TrustGrade.DANGEROUS:
        if seed_dir:
            installed.extend(install_seed_config_dir(seed_dir, root, prefix=SEED_CFG_PREFIX, dry_run=dry_run))
        else:
            # cloud-init may still find NoCloud media (e.g. a CIDATA drive) on first boot
            logger.info("No seed cloud-init config dir given")
    else:
        raise ConfigurationError(f"internal error: unknown model grade {model_grade!r}")

    logger.info("Installed %d cloud-init config file(s) for grade %s", len(installed), model_grade.value)
    return InstallReport(
        grade=model_grade,
        installed=tuple(installed),
        gadget_datasources=gadget_datasources,
    )
