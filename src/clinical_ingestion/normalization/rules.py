# ============================================================================
# src/clinical_ingestion/normalization/rules.py
# ============================================================================
"""
Parameter Recognition Rule Table

The analyte rules live in knowledge/parameter_rules.json. Adding an analyte
means adding an entry there; nothing in the extraction code branches on a
specific analyte.

Each rule compiles into one value regex:

    <synonym> [(qualifier)] [:|=|-|...] <value> [<unit>] [(Normal: min-max) | min-max]
"""

import json
import re
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Tuple

from ..constants.units import UNIT_PATTERN
from ..utils.exceptions import RuleTableError

logger = logging.getLogger(__name__)

NUMBER = r"\d+(?:\.\d+)?"

VALUE_TEMPLATE = (
    r"(?<![A-Za-z0-9])(?P<name>{synonyms})(?![A-Za-z])"
    r"[ \t]*(?:\((?P<qualifier>[^)\d\n]{{0,30}})\))?"
    r"[ \t]*(?:(?:[:=\-–,]|\.{{2,}}|is|was|of)[ \t]*)?"
    r"(?P<value>" + NUMBER + r")(?![\d/])"
    r"(?:(?:[ \t]*,)?[ \t]*(?P<unit>" + UNIT_PATTERN + r"))?"
    r"(?:[ \t]*\([^)\d\n]{{0,25}}?(?P<min>" + NUMBER + r")[ \t]*[-–][ \t]*(?P<max>" + NUMBER + r")[^)\n]{{0,15}}\)"
    r"|(?:[ \t]*,[ \t]*|[ \t]+)(?P<min2>" + NUMBER + r")[ \t]*[-–][ \t]*(?P<max2>" + NUMBER + r"))?"
)


@dataclass(frozen=True)
class ParameterRule:
    key: str
    name: str
    synonyms: Tuple[str, ...]
    unit: str
    reference_range: Tuple[float, float]
    plausible_range: Optional[Tuple[float, float]] = None
    auto_detect_window: Optional[Tuple[float, float]] = None
    category: str = "general"

    # Compiled lazily by the table
    value_pattern: Optional[Pattern] = field(default=None, compare=False, repr=False)
    name_pattern: Optional[Pattern] = field(default=None, compare=False, repr=False)

    @property
    def ref_min(self) -> float:
        return self.reference_range[0]

    @property
    def ref_max(self) -> float:
        return self.reference_range[1]


class ParameterRuleTable:
    """
    Ordered, immutable collection of ParameterRule.

    Order is significant: when two rules could claim the same text span,
    the earlier rule wins (HbA1c before Hemoglobin, HDL before Cholesterol).
    """

    def __init__(self, rules: List[ParameterRule], default_analyte: Optional[str] = None,
                 version: str = "unversioned"):
        if not rules:
            raise RuleTableError("Parameter rule table is empty")

        self.version = version
        self._rules: List[ParameterRule] = [self._compile(rule) for rule in rules]
        self._by_key: Dict[str, ParameterRule] = {rule.key: rule for rule in self._rules}
        self._by_name: Dict[str, ParameterRule] = {rule.name.lower(): rule for rule in self._rules}

        if default_analyte and default_analyte not in self._by_key:
            raise RuleTableError(f"Default analyte {default_analyte!r} has no rule")
        self.default_analyte = default_analyte

    @staticmethod
    def _compile(rule: ParameterRule) -> ParameterRule:
        if rule.ref_min >= rule.ref_max:
            raise RuleTableError(f"Rule {rule.key!r}: reference range {rule.reference_range} is not increasing")

        alternation = "|".join(f"(?:{syn})" for syn in rule.synonyms)
        try:
            value_pattern = re.compile(VALUE_TEMPLATE.format(synonyms=alternation), re.IGNORECASE)
            name_pattern = re.compile(rf"^\s*(?:{alternation})\s*(?:\([^)]*\))?\s*[:.]?\s*$", re.IGNORECASE)
        except re.error as e:
            raise RuleTableError(f"Rule {rule.key!r} has an invalid synonym pattern: {e}") from e

        object.__setattr__(rule, "value_pattern", value_pattern)
        object.__setattr__(rule, "name_pattern", name_pattern)
        return rule

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def get(self, key: str) -> Optional[ParameterRule]:
        return self._by_key.get(key)

    @property
    def default_rule(self) -> Optional[ParameterRule]:
        if self.default_analyte is None:
            return None
        return self._by_key[self.default_analyte]

    def resolve(self, name: str) -> Optional[ParameterRule]:
        """Rule for a canonical name, rule key or free-form synonym."""
        if not name:
            return None
        lowered = name.strip().lower()
        return self._by_name.get(lowered) or self._by_key.get(lowered) or self.match_name(name)

    def match_name(self, name: str) -> Optional[ParameterRule]:
        """Find the rule whose synonyms cover a whole parameter name (e.g. a table cell)."""
        if not name:
            return None
        for rule in self._rules:
            if rule.name_pattern.match(name):
                return rule
        return None


def load_parameter_rules(path: Path) -> ParameterRuleTable:
    """
    Load the rule table from JSON.

    Raises:
        RuleTableError: file missing, unreadable or structurally invalid
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise RuleTableError(f"Parameter rule table not found: {path}") from e
    except json.JSONDecodeError as e:
        raise RuleTableError(f"Parameter rule table is not valid JSON: {e}") from e

    rules = []
    for entry in data.get("rules", []):
        try:
            rules.append(ParameterRule(
                key=entry["key"],
                name=entry["name"],
                synonyms=tuple(entry["synonyms"]),
                unit=entry.get("unit", ""),
                reference_range=tuple(entry["reference_range"]),
                plausible_range=tuple(entry["plausible_range"]) if entry.get("plausible_range") else None,
                auto_detect_window=tuple(entry["auto_detect_window"]) if entry.get("auto_detect_window") else None,
                category=entry.get("category", "general"),
            ))
        except (KeyError, TypeError) as e:
            raise RuleTableError(f"Malformed rule entry {entry!r}: {e}") from e

    table = ParameterRuleTable(
        rules,
        default_analyte=data.get("default_analyte"),
        version=data.get("version", "unversioned"),
    )
    logger.debug(f"Loaded {len(table)} parameter rules (version {table.version}) from {path}")
    return table
