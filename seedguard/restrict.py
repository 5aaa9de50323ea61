"""Lock cloud-init down after its first run.

Once cloud-init has provisioned the device, later boots must not accept
config from a different datasource: a spoofed metadata service or a USB
drive labelled CIDATA could otherwise add users, keys or commands. The
engine either disables cloud-init for good or pins it to the datasource it
already used (CVE-2020-11933).
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import (
    AgentStatusError,
    DataIntegrityError,
    FilesystemError,
    ParseError,
    StateConflictError,
)
from .installer import disable_cloud_init
from .lib.env import Paths
from .lib.fsutil import ensure_dir, write_file_atomic
from .model import CloudInitState, RestrictAction, RestrictionOutcome
from .status import query_state

logger = logging.getLogger(__name__)

_DATASOURCE_RE = re.compile(r"DataSource([a-zA-Z0-9]+).*")

LOCAL_DATASOURCES = ("NoCloud", "None")

# NoCloud also needs its fs_label import switched off, otherwise any drive
# labelled CIDATA becomes a datasource again. manual_cache_clean makes
# cloud-init keep trusting the cached instance-id: with fs_label null it can
# no longer read one on later boots and would apply default config over the
# first-boot config.
NOCLOUD_RESTRICT_YAML = """datasource_list: [NoCloud]
datasource:
  NoCloud:
    fs_label: null
manual_cache_clean: true
"""

GENERIC_RESTRICT_YAML = "datasource_list: [{}]\n"


@dataclass(frozen=True)
class RestrictOptions:
    # disable even when cloud-init is enabled (maybe running) or errored
    force_disable: bool = False
    # disable rather than restrict once a local datasource (NoCloud, None) ran
    disable_local_after_first_run: bool = False


def read_used_datasource(paths: Paths) -> str:
    """Return the datasource cloud-init used, from its status.json.

    ``v1.datasource`` looks like ``DataSourceNoCloud [seed=/dev/sr0][dsmode=net]``;
    only the name after ``DataSource`` is returned.
    """

    results = paths.status_file
    try:
        raw = results.read_bytes()
    except OSError as e:
        raise FilesystemError(f"cannot read cloud-init results {results}: {e}") from e

    try:
        stat = json.loads(raw.decode("utf-8"))
    except ValueError as e:
        # UnicodeDecodeError included
        raise ParseError(f"invalid JSON in {results}: {e}") from e

    v1 = stat.get("v1") if isinstance(stat, dict) else None
    if not isinstance(v1, dict):
        raise DataIntegrityError(f"cloud-init error: missing v1 object in {results}")

    datasource_raw = v1.get("datasource")
    if not datasource_raw:
        raise DataIntegrityError("cloud-init error: missing datasource from status.json")
    if not isinstance(datasource_raw, str):
        raise DataIntegrityError(f"cloud-init error: unexpected datasource format {datasource_raw!r}")

    m = _DATASOURCE_RE.search(datasource_raw)
    if m is None:
        raise DataIntegrityError(f"cloud-init error: unexpected datasource format {datasource_raw!r}")
    return m.group(1)


def _write_restriction(paths: Paths, contents: str) -> None:
    ensure_dir(paths.cloud_cfg_dir, what="cloud config dir")
    write_file_atomic(paths.restrict_file, contents)
    logger.info("Wrote cloud-init restriction %s", str(paths.restrict_file))


def apply_restriction(
    state: CloudInitState,
    paths: Paths,
    options: Optional[RestrictOptions] = None,
) -> RestrictionOutcome:
    """Disable or restrict cloud-init given its current ``state``.

    Meant for steady states (done, untriggered). Enabled and errored states
    are refused unless ``options.force_disable`` is set, in which case
    cloud-init is disabled.
    """

    opts = options or RestrictOptions()

    if state is CloudInitState.RESTRICTED_BY_SNAPD:
        raise StateConflictError("cannot restrict cloud-init: already restricted")
    if state is CloudInitState.DISABLED_PERMANENTLY:
        raise StateConflictError("cannot restrict cloud-init: already disabled")
    if state in (CloudInitState.ERRORED, CloudInitState.ENABLED) and not opts.force_disable:
        raise StateConflictError(
            "cannot restrict cloud-init in error or enabled state",
            hint="use force_disable to disable it anyway",
            context={"state": state.value},
        )

    if state is not CloudInitState.DONE:
        logger.info("Disabling cloud-init (state=%s)", state.value)
        disable_cloud_init(paths.root)
        return RestrictionOutcome(action=RestrictAction.DISABLE)

    datasource = read_used_datasource(paths)
    logger.info("cloud-init used datasource %s", datasource)

    if opts.disable_local_after_first_run and datasource in LOCAL_DATASOURCES:
        disable_cloud_init(paths.root)
        return RestrictionOutcome(action=RestrictAction.DISABLE, datasource=datasource)

    if datasource == "NoCloud":
        _write_restriction(paths, NOCLOUD_RESTRICT_YAML)
    else:
        _write_restriction(paths, GENERIC_RESTRICT_YAML.format(datasource))
    return RestrictionOutcome(action=RestrictAction.RESTRICT, datasource=datasource)


def restrict_cloud_init(
    paths: Paths,
    options: Optional[RestrictOptions] = None,
    *,
    query: Callable[[Paths], CloudInitState] = query_state,
) -> RestrictionOutcome:
    """Observe cloud-init's current state and lock it down accordingly."""

    try:
        state = query(paths)
    except AgentStatusError as e:
        logger.warning("cloud-init status query failed, treating as errored: %s", e)
        state = e.state
    return apply_restriction(state, paths, options)
