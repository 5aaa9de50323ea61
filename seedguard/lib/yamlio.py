from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..errors import FilesystemError, ParseError


def read_yaml(path: str | Path) -> Any:
    """Load a YAML document with ``safe_load``; an empty file yields None."""

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise FilesystemError(f"cannot read {p}: {e}") from e
    except UnicodeDecodeError as e:
        raise ParseError(f"{p} is not valid UTF-8: {e}") from e

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid YAML in {p}: {e}") from e
