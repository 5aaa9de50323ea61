from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from .errors import ConfigurationError


class TrustGrade(str, Enum):
    """Trust tier of the device model; governs which seed config is accepted."""

    SECURED = "secured"
    SIGNED = "signed"
    DANGEROUS = "dangerous"

    @classmethod
    def parse(cls, value: Union[str, "TrustGrade", None]) -> "TrustGrade":
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ConfigurationError(f"unknown model grade {value!r}")
        try:
            return cls(value.strip().lower())
        except ValueError as e:
            raise ConfigurationError(
                f"unknown model grade {value!r}",
                hint="expected one of: " + ", ".join(g.value for g in cls),
            ) from e


class CloudInitState(str, Enum):
    DISABLED_PERMANENTLY = "disabled-permanently"
    RESTRICTED_BY_SNAPD = "restricted-by-snapd"
    # cloud-init reports "disabled" but could still be triggered
    UNTRIGGERED = "untriggered"
    DONE = "done"
    # "running", "not run" and any status word we do not recognise
    ENABLED = "enabled"
    NOT_FOUND = "not-found"
    ERRORED = "errored"


class RestrictAction(str, Enum):
    DISABLE = "disable"
    RESTRICT = "restrict"


@dataclass(frozen=True)
class DatasourceSet:
    """Datasources referenced by one cloud-init config document.

    All names are upper case since cloud-init matches them case-insensitively.
    ``explicitly_allowed`` is ``None`` when ``datasource_list`` was not set at
    all; an empty ``datasource_list`` yields ``()`` together with
    ``explicitly_none_allowed``.
    """

    explicitly_allowed: Optional[Tuple[str, ...]]
    explicitly_none_allowed: bool
    mentioned: Tuple[str, ...]


@dataclass(frozen=True)
class RestrictionOutcome:
    action: RestrictAction
    datasource: Optional[str] = None
