from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigurationError
from .lib.env import Paths
from .lib.yamlio import read_yaml
from .logging_utils import DEFAULT_LOG_PATH, parse_level


@dataclass(frozen=True)
class Settings:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _opt_str(self, key: str) -> Optional[str]:
        v = self.raw.get(key)
        if v is None or v == "":
            return None
        return str(v)

    def _flag(self, key: str, default: bool) -> bool:
        v = self.raw.get(key, default)
        if not isinstance(v, bool):
            raise ConfigurationError(f"setting '{key}' must be true or false, got {v!r}")
        return v

    @property
    def root(self) -> str:
        return self._opt_str("root") or "/"

    @property
    def target_root(self) -> Optional[str]:
        return self._opt_str("target_root")

    @property
    def grade(self) -> Optional[str]:
        return self._opt_str("grade")

    @property
    def gadget_dir(self) -> Optional[str]:
        return self._opt_str("gadget_dir")

    @property
    def seed_dir(self) -> Optional[str]:
        return self._opt_str("seed_dir")

    @property
    def allow_cloud_init(self) -> bool:
        return self._flag("allow_cloud_init", True)

    @property
    def agent(self) -> str:
        return self._opt_str("agent") or "cloud-init"

    @property
    def force_disable(self) -> bool:
        return self._flag("force_disable", False)

    @property
    def disable_local_after_first_run(self) -> bool:
        return self._flag("disable_local_after_first_run", False)

    @property
    def log_path(self) -> str:
        return self._opt_str("log_path") or DEFAULT_LOG_PATH

    @property
    def log_level(self) -> int:
        return parse_level(self.raw.get("log_level", "info"))

    @property
    def log_console(self) -> bool:
        return self._flag("log_console", True)

    @property
    def paths(self) -> Paths:
        return Paths.at(self.root, agent=self.agent)


def load_settings(path: str) -> Settings:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"settings file not found: {path}")

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigurationError("settings file must be YAML")

    raw = read_yaml(p) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} must contain a mapping/object")

    return Settings(raw=raw)
