# -*- coding: utf-8 -*-
"""
Qualifier classification (YAML-driven) shared by every provider normalizer.

- The table ships with the package (<package>/data/qualifiers.yaml) and is
  loaded once per process. There is no runtime override.
- The YAML is checked against a tight JSON Schema on load (reject unknown keys).
- ``classify`` reduces an ordered qualifier list to the strongest effect:
    hard_deny > soft_deny > neutral
  and remembers which qualifier triggered it.

Example:
    table = load_table("idology")
    result = classify(qualifiers, table)
    if result.denied: ...
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml
from jsonschema import ValidationError as SchemaError
from jsonschema import validate as json_validate

from .models import Qualifier

logger = logging.getLogger("kyc.rules")

# ------------------------------ Constants ------------------------------------

_TABLE_PATH: Path = Path(__file__).resolve().parent / "data" / "qualifiers.yaml"


class Effect(str, Enum):
    NEUTRAL = "neutral"
    SOFT_DENY = "soft_deny"
    HARD_DENY = "hard_deny"


_RANK: Dict[Effect, int] = {Effect.NEUTRAL: 0, Effect.SOFT_DENY: 1, Effect.HARD_DENY: 2}


# ------------------------------ Types ----------------------------------------

@dataclass(frozen=True)
class QualifierRule:
    pattern: re.Pattern
    effect: Effect
    description: str = ""
    verified: bool = True

    def matches(self, qualifier: Qualifier) -> bool:
        return self.pattern.search(qualifier.key) is not None


@dataclass(frozen=True)
class RuleTable:
    provider: str
    rules: Tuple[QualifierRule, ...]
    credential_errors: Tuple[re.Pattern, ...] = ()

    def rule_for(self, qualifier: Qualifier) -> Optional[QualifierRule]:
        for rule in self.rules:
            if rule.matches(qualifier):
                return rule
        return None

    def is_credential_error(self, message: str) -> bool:
        return any(p.search(message or "") for p in self.credential_errors)


@dataclass(frozen=True)
class Classification:
    effect: Effect = Effect.NEUTRAL
    trigger: Optional[Qualifier] = None
    rule: Optional[QualifierRule] = None

    @property
    def denied(self) -> bool:
        return self.effect is not Effect.NEUTRAL


# ------------------------------ Helpers --------------------------------------

@lru_cache(maxsize=1)
def _json_schema() -> Dict[str, Any]:
    """Return the static JSON schema for the table file (cached)."""
    rule = {
        "type": "object",
        "properties": {
            "pattern":     {"type": "string", "minLength": 1},
            "effect":      {"enum": [e.value for e in Effect]},
            "description": {"type": "string"},
            "verified":    {"type": "boolean"},
        },
        "required": ["pattern", "effect"],
        "additionalProperties": False,
    }
    provider = {
        "type": "object",
        "properties": {
            "credential_errors": {"type": "array", "items": {"type": "string"}},
            "rules":             {"type": "array", "items": rule},
        },
        "required": ["rules"],
        "additionalProperties": False,
    }
    return {
        "type": "object",
        "properties": {
            "version":   {"type": "integer"},
            "providers": {"type": "object", "additionalProperties": provider},
        },
        "required": ["providers"],
        "additionalProperties": False,
    }


def parse_table(provider: str, data: Dict[str, Any]) -> RuleTable:
    """Validate raw table data and build the rules for one provider."""
    try:
        json_validate(instance=data, schema=_json_schema())
    except SchemaError as exc:
        raise ValueError(f"Invalid qualifier table: {str(exc).splitlines()[0]}") from exc

    section = data["providers"].get(provider)
    if section is None:
        raise KeyError(f"No qualifier rules for provider '{provider}'")

    rules = tuple(
        QualifierRule(
            pattern=re.compile(r["pattern"]),
            effect=Effect(r["effect"]),
            description=r.get("description", ""),
            verified=r.get("verified", True),
        )
        for r in section["rules"]
    )
    creds = tuple(re.compile(p, re.IGNORECASE) for p in section.get("credential_errors", []))
    return RuleTable(provider=provider, rules=rules, credential_errors=creds)


@lru_cache(maxsize=None)
def load_table(provider: str) -> RuleTable:
    """Load the packaged table for ``provider`` (cached per process)."""
    with _TABLE_PATH.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return parse_table(provider, data)


# ------------------------------ Classification -------------------------------

def classify(qualifiers: Iterable[Qualifier], table: RuleTable) -> Classification:
    """Return the strongest effect among ``qualifiers``.

    On ties the earliest qualifier is kept as the trigger, so provider order
    decides which signal is reported.
    """
    best = Classification()
    for qualifier in qualifiers:
        rule = table.rule_for(qualifier)
        if rule is None:
            continue
        if not rule.verified:
            logger.warning(
                "%s qualifier %r is not verified against live responses; treating as %s",
                table.provider, qualifier.key, rule.effect.value,
            )
        if _RANK[rule.effect] > _RANK[best.effect]:
            best = Classification(effect=rule.effect, trigger=qualifier, rule=rule)
    return best
