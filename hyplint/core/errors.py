"""
Engine Errors — Exception taxonomy.

Only ConfigurationError (and RegistrationError, a startup programmer error)
aborts a run. Everything else is isolated to one file, one rule, or one
function and surfaces as a diagnostic.
"""

from __future__ import annotations


class HyplintError(Exception):
    """Base class for all engine errors."""


class RegistrationError(HyplintError):
    """Two checkers were registered under the same rule id."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Duplicate checker registration for rule '{rule_id}'")
        self.rule_id = rule_id


class ConfigurationError(HyplintError):
    """Invalid configuration. Raised before any file is analyzed."""


class ParseFailure(HyplintError):
    """The frontend could not produce a tree for a file."""

    def __init__(self, path: str, reason: str, line: int = 1) -> None:
        super().__init__(f"{path}:{line}: {reason}")
        self.path = path
        self.reason = reason
        self.line = line


class MalformedSyntaxError(HyplintError):
    """A subtree does not have the shape an analysis relies on."""

    def __init__(self, kind: str, line: int, detail: str) -> None:
        super().__init__(f"Malformed '{kind}' at line {line}: {detail}")
        self.kind = kind
        self.line = line


class CheckerInternalError(HyplintError):
    """A checker failed while analyzing one file."""

    def __init__(self, rule_id: str, path: str, cause: BaseException) -> None:
        super().__init__(f"Rule '{rule_id}' failed on {path}: {type(cause).__name__}: {cause}")
        self.rule_id = rule_id
        self.path = path
        self.cause = cause
