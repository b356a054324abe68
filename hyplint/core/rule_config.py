"""
Rule Configuration — Loading and resolving per-rule configuration.

Resolution order is built-in default, then project overrides, then request
overrides, merged field by field.
Unknown rule ids are warnings; malformed parameters are fatal and abort the
run before any file is analyzed.
"""

from __future__ import annotations

import logging
import re
import tomllib
from pathlib import Path
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from hyplint.core.checker import Checker
from hyplint.core.errors import ConfigurationError
from hyplint.models.diagnostic_models import SEVERITY_RANKS, Severity
from hyplint.models.rule_models import ResolvedConfig, RuleConfig, RuleOverride

logger = logging.getLogger("hyplint.config")

# "e11" style keys address a whole problem family
_FAMILY_KEY = re.compile(r"^E\d{2}$")

_SEVERITY_BY_RANK = {rank: severity for severity, rank in SEVERITY_RANKS.items()}


def _normalize_key(key: str) -> str:
    # "e1101_high_cyclomatic_complexity" and "E1101" address the same rule
    return key.split("_", 1)[0].upper()


def _coerce_severity(rule_key: str, value: Any) -> Severity:
    if isinstance(value, bool):
        raise ConfigurationError(f"[{rule_key}] severity must be a name or 0-4, got {value!r}")
    if isinstance(value, int):
        if value not in _SEVERITY_BY_RANK:
            raise ConfigurationError(f"[{rule_key}] severity {value} is out of range")
        return _SEVERITY_BY_RANK[value]
    if isinstance(value, str):
        try:
            return Severity(value.lower())
        except ValueError:
            raise ConfigurationError(f"[{rule_key}] unknown severity '{value}'") from None
    raise ConfigurationError(f"[{rule_key}] severity must be a name or 0-4, got {value!r}")


def parse_overrides(raw: Mapping[str, Any]) -> dict[str, RuleOverride]:
    """
    Turn a loader mapping into RuleOverride records.

    Each entry may hold ``enabled``, ``severity`` and parameters, either flat
    (``max_complexity = 12``) or under a ``parameters`` table.
    """
    overrides: dict[str, RuleOverride] = {}
    for key, value in raw.items():
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"[{key}] must be a table, got {type(value).__name__}")
        entry = dict(value)
        parameters = entry.pop("parameters", {})
        if not isinstance(parameters, Mapping):
            raise ConfigurationError(f"[{key}] parameters must be a table")
        enabled = entry.pop("enabled", None)
        if enabled is not None and not isinstance(enabled, bool):
            raise ConfigurationError(f"[{key}] enabled must be true or false, got {enabled!r}")
        severity = entry.pop("severity", None)
        # Category overrides are accepted for compatibility but not configurable
        entry.pop("categories", None)

        try:
            overrides[key] = RuleOverride(
                enabled=enabled,
                severity=_coerce_severity(key, severity) if severity is not None else None,
                parameters={**entry, **parameters},
            )
        except ValidationError as e:
            raise ConfigurationError(f"[{key}] invalid override: {e}") from e
    return overrides


def load_rule_overrides(path: str | Path) -> dict[str, RuleOverride]:
    """Read the ``[checkers]`` table of a TOML file. A missing file means no overrides."""
    config_path = Path(path)
    if not config_path.exists():
        logger.debug(f"No rule configuration at {config_path}, using defaults")
        return {}

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"TOML parse error in {config_path}: {e}") from e

    checkers = data.get("checkers", {})
    if not isinstance(checkers, dict):
        raise ConfigurationError(f"{config_path}: [checkers] must be a table")
    return parse_overrides(checkers)


def merge_override(base: RuleOverride, top: RuleOverride) -> RuleOverride:
    """Layer ``top`` over ``base`` field by field; unset fields fall through."""
    return RuleOverride(
        enabled=top.enabled if top.enabled is not None else base.enabled,
        severity=top.severity if top.severity is not None else base.severity,
        parameters={**base.parameters, **top.parameters},
    )


def resolve_config(
    checkers: Sequence[Checker],
    *layers: Mapping[str, RuleOverride],
) -> ResolvedConfig:
    """
    Merge every checker's defaults with its overrides, validating parameters.

    ``layers`` are applied in order (project, then request), so each rule ends
    up with one override record. Two keys of one layer naming the same rule
    are merged in order with a warning.
    """
    by_id = {checker.rule_id.upper(): checker for checker in checkers}
    families = {checker.family for checker in checkers}

    rule_overrides: dict[str, RuleOverride] = {}
    family_enabled: dict[str, bool] = {}
    warnings: list[str] = []

    for layer in layers:
        first_key: dict[str, str] = {}
        for key, override in layer.items():
            normalized = _normalize_key(key)
            if normalized in first_key:
                warnings.append(
                    f"Keys '{first_key[normalized]}' and '{key}' both configure "
                    f"'{normalized}'; merged in order"
                )
            first_key.setdefault(normalized, key)

            if normalized in by_id:
                previous = rule_overrides.get(normalized)
                rule_overrides[normalized] = (
                    override if previous is None else merge_override(previous, override)
                )
            elif _FAMILY_KEY.match(normalized) and normalized in families:
                if override.enabled is not None:
                    family_enabled[normalized] = override.enabled
                if override.parameters or override.severity is not None:
                    warnings.append(
                        f"Family override '{key}' only supports 'enabled'; other keys ignored"
                    )
            else:
                warnings.append(f"Unknown rule id '{key}' in configuration; ignored")

    disabled_families = {family for family, on in family_enabled.items() if not on}

    rules: dict[str, RuleConfig] = {}
    for rule_id, checker in by_id.items():
        base = checker.default_config()
        override = rule_overrides.get(rule_id)

        enabled = base.enabled and checker.family not in disabled_families
        severity = base.severity
        parameters = dict(base.parameters)
        if override is not None:
            if override.enabled is not None:
                enabled = override.enabled
            if override.severity is not None:
                severity = override.severity
            parameters.update(override.parameters)

        try:
            validated = checker.params_model.model_validate(parameters)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid parameters for rule '{rule_id}': {e}") from e

        rules[checker.rule_id] = RuleConfig(
            enabled=enabled,
            severity=severity,
            parameters=validated.model_dump(),
        )

    for warning in warnings:
        logger.warning(warning)

    return ResolvedConfig(rules=rules, warnings=tuple(warnings))
