from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

CLOUD_DIR = "etc/cloud"
CLOUD_CFG_DIR = "etc/cloud/cloud.cfg.d"
DISABLED_FILE = "etc/cloud/cloud-init.disabled"
RESTRICT_FILE = "etc/cloud/cloud.cfg.d/zzzz_snapd.cfg"
STATUS_FILE = "run/cloud-init/status.json"

WRITABLE_DEFAULTS_DIR = "_writable_defaults"


@dataclass(frozen=True)
class Paths:
    """Filesystem locations, all relative to ``root``."""

    root: Path = Path("/")
    agent: str = "cloud-init"

    @classmethod
    def at(cls, root: str | Path, *, agent: str = "cloud-init") -> "Paths":
        return cls(root=Path(root), agent=agent)

    @property
    def cloud_dir(self) -> Path:
        return self.root / CLOUD_DIR

    @property
    def cloud_cfg_dir(self) -> Path:
        return self.root / CLOUD_CFG_DIR

    @property
    def disabled_file(self) -> Path:
        return self.root / DISABLED_FILE

    @property
    def restrict_file(self) -> Path:
        return self.root / RESTRICT_FILE

    @property
    def status_file(self) -> Path:
        return self.root / STATUS_FILE


def writable_defaults_dir(target_root: str | Path) -> Path:
    """Directory in the target image whose content seeds the writable area."""

    return Path(target_root) / WRITABLE_DEFAULTS_DIR
