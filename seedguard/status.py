"""Lifecycle state of cloud-init.

Marker files written by seedguard are checked first; cloud-init itself is
only asked (``cloud-init status``) when neither is present. Status words we
do not know are reported as ENABLED: cloud-init may still be doing something.
"""

from __future__ import annotations

import logging
import re
import shutil
from typing import Callable, Optional, Sequence

from .errors import AgentOutputError, AgentStatusError, CommandError
from .lib.command import CmdResult, run_cmd
from .lib.env import Paths
from .model import CloudInitState

logger = logging.getLogger(__name__)

# cloud-init output spans several lines
_STATUS_RE = re.compile(r"^status: (.*)$", re.MULTILINE)

_STATUS_WORDS = {
    # not disabled by our marker file, so it could still be triggered
    "disabled": CloudInitState.UNTRIGGERED,
    "error": CloudInitState.ERRORED,
    "done": CloudInitState.DONE,
    "running": CloudInitState.ENABLED,
    "not run": CloudInitState.ENABLED,
}

Runner = Callable[..., CmdResult]
Which = Callable[[str], Optional[str]]


def parse_status_output(output: str) -> CloudInitState:
    """Map ``cloud-init status`` output to a state.

    Raises AgentOutputError when there is no ``status:`` line.
    """

    m = _STATUS_RE.search(output)
    if m is None:
        raise AgentOutputError("invalid cloud-init output", state=CloudInitState.ERRORED, output=output)
    # only trailing blanks; "status:  done" is not a status we know
    word = m.group(1).rstrip("\r ")
    return _STATUS_WORDS.get(word, CloudInitState.ENABLED)


def query_state(
    paths: Paths,
    *,
    runner: Runner = run_cmd,
    which: Which = shutil.which,
) -> CloudInitState:
    if paths.restrict_file.exists():
        return CloudInitState.RESTRICTED_BY_SNAPD

    if paths.disabled_file.exists():
        return CloudInitState.DISABLED_PERMANENTLY

    binary = which(paths.agent)
    if not binary:
        logger.info("cannot locate %s executable", paths.agent)
        return CloudInitState.NOT_FOUND

    argv: Sequence[str] = [binary, "status"]
    try:
        res = runner(argv, check=True)
    except CommandError as e:
        raise AgentStatusError(
            f"{paths.agent} status failed (exit {e.returncode})",
            state=CloudInitState.ERRORED,
            output=e.output,
        ) from e

    state = parse_status_output(res.output)
    logger.info("cloud-init state: %s", state.value)
    return state
