"""Error taxonomy shared by the installer, status oracle and restriction engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional

if TYPE_CHECKING:
    from .model import CloudInitState


class SeedguardError(RuntimeError):
    """Base error carrying an optional hint and context for diagnostics."""

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        for k, v in self.context.items():
            if v not in (None, ""):
                parts.append(f"  {k}: {v}")
        return "\n".join(parts)


class ConfigurationError(SeedguardError, ValueError):
    """Bad or missing caller arguments (target dir, grade, settings)."""


class ParseError(SeedguardError, ValueError):
    """A document or command output is not in the expected shape."""


class FilesystemError(SeedguardError):
    """Creating, reading, writing or copying a file failed."""


class StateConflictError(SeedguardError):
    pass


class DataIntegrityError(SeedguardError):
    """The agent's results record is missing data or holds unexpected data."""


class CommandError(SeedguardError):
    def __init__(
        self,
        message: str,
        *,
        returncode: Optional[int] = None,
        output: str = "",
        hint: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, hint=hint, context=context)
        self.returncode = returncode
        self.output = output


class AgentStatusError(SeedguardError):
    """The agent status query did not yield a usable status.

    ``state`` is the state callers should assume (the status oracle passes
    ERRORED) and ``output`` holds the raw agent output for diagnostics.
    """

    def __init__(
        self,
        message: str,
        *,
        state: CloudInitState,
        output: str = "",
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message, hint=hint, context={"output": output.strip()})
        self.state = state
        self.output = output


class AgentOutputError(AgentStatusError, ParseError):
    pass
