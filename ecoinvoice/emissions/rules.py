"""
Rule Tables Module.

This module loads the two externally editable rule tables that drive
classification and unit handling:
    - RuleTable: ordered category rules (keywords, ESG scope, emission factor)
    - UnitTable: raw unit aliases and scaled units

Both tables are immutable once built and are passed into the components
that use them, so tests can swap in small hand-written tables.

Usage:
    from ecoinvoice.emissions.rules import RuleTable, UnitTable

    rules = RuleTable.from_yaml("config/rules/categories.yaml")
    units = UnitTable.from_dict({"units": {"liter": ["l"]}})

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Pattern, Tuple, Union

import yaml

from config import ConfigurationManager
from ecoinvoice.utils.logger import get_logger
from ecoinvoice.utils.exceptions import RuleTableError

# Initialize module logger
logger = get_logger(__name__)


class Unit(str, Enum):
    """Canonical units a quantity is normalized to."""

    LITER = "liter"
    KILOGRAM = "kilogram"
    PIECE = "piece"
    KILOWATT_HOUR = "kilowatt_hour"
    CUBIC_METER = "cubic_meter"

    @classmethod
    def parse(cls, value: Union[str, "Unit"], source: str = "unit") -> "Unit":
        """Parse a canonical unit name, raising RuleTableError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise RuleTableError(source, f"unknown unit '{value}'")


@dataclass(frozen=True)
class EmissionFactor:
    """
    Emission factor reference data.

    Attributes:
        id: Stable factor identifier.
        name: Human-readable name.
        unit: Unit the factor is expressed per.
        co2_per_unit_kg: Kilograms CO2-equivalent per unit.
        source: Provenance label.
    """
    id: str
    name: str
    unit: Unit
    co2_per_unit_kg: float
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'unit': self.unit.value,
            'co2_per_unit_kg': self.co2_per_unit_kg,
            'source': self.source,
        }


def compile_keyword(keyword: str) -> Pattern:
    """
    Compile a keyword into a whole-word, case-insensitive pattern.

    A leading or trailing '*' lifts the word boundary on that side so the
    keyword also matches inside compound words.

    Example:
        >>> bool(compile_keyword("*diesel").search("Anleggsdiesel 200 l"))
        True
        >>> bool(compile_keyword("mat").search("Automat"))
        False
    """
    word = keyword.strip()
    open_left = word.startswith("*")
    open_right = word.endswith("*")
    word = word.strip("*").strip()

    body = r"\s+".join(re.escape(part) for part in word.split())
    left = r"\w*" if open_left else r"(?<!\w)"
    right = r"\w*" if open_right else r"(?!\w)"
    return re.compile(left + body + right, re.IGNORECASE)


@dataclass(frozen=True)
class CategoryRule:
    """
    One row of the category table.

    Attributes:
        category: Category tag, e.g. "fuel_diesel".
        scope: ESG scope (1, 2 or 3).
        keywords: Keywords as written in the table.
        factor: Default emission factor, if the category has one.
    """
    category: str
    scope: int
    keywords: Tuple[str, ...]
    factor: Optional[EmissionFactor] = None

    def __post_init__(self):
        patterns = tuple(compile_keyword(k) for k in self.keywords)
        object.__setattr__(self, '_patterns', patterns)

    def matches(self, text: str) -> bool:
        """Check whether any keyword occurs in text."""
        return any(p.search(text) for p in self._patterns)


class RuleTable:
    """
    Ordered, immutable collection of category rules.

    Example:
        >>> table = RuleTable.from_dict({"categories": [
        ...     {"category": "waste", "scope": 3, "keywords": ["avfall*"]}]})
        >>> table.get("waste").scope
        3
    """

    def __init__(self, rules: List[CategoryRule], source: str = "<memory>") -> None:
        self._rules = tuple(rules)
        self._by_category = {rule.category: rule for rule in self._rules}
        self.source = source

        if len(self._by_category) != len(self._rules):
            raise RuleTableError(source, "duplicate category")

        logger.debug(f"Rule table loaded with {len(self._rules)} categories from {source}")

    def __iter__(self) -> Iterator[CategoryRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def categories(self) -> List[str]:
        return [rule.category for rule in self._rules]

    def get(self, category: Optional[str]) -> Optional[CategoryRule]:
        """Get the rule for a category tag (case-insensitive)."""
        if not category:
            return None
        return self._by_category.get(category.strip().lower())

    def factor_for(self, category: Optional[str]) -> Optional[EmissionFactor]:
        """Get the default emission factor of a category, if any."""
        rule = self.get(category)
        return rule.factor if rule else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "<memory>") -> 'RuleTable':
        """
        Build a table from the parsed YAML structure.

        Args:
            data: Mapping with a "categories" list.
            source: Label used in error messages.

        Raises:
            RuleTableError: If the structure is malformed.
        """
        if not isinstance(data, dict) or not isinstance(data.get("categories"), list):
            raise RuleTableError(source, "expected a 'categories' list")

        rules = []
        for index, entry in enumerate(data["categories"]):
            where = f"{source}#{index}"
            if not isinstance(entry, dict) or not entry.get("category"):
                raise RuleTableError(where, "rule needs a 'category'")

            keywords = entry.get("keywords") or []
            if not isinstance(keywords, list) or not keywords:
                raise RuleTableError(where, "rule needs a non-empty 'keywords' list")

            scope = entry.get("scope", 3)
            if scope not in (1, 2, 3):
                raise RuleTableError(where, f"scope must be 1, 2 or 3, got {scope!r}")

            factor = None
            if entry.get("factor"):
                factor = cls._parse_factor(entry["factor"], entry["category"], where)

            rules.append(CategoryRule(
                category=str(entry["category"]).strip().lower(),
                scope=int(scope),
                keywords=tuple(str(k) for k in keywords),
                factor=factor,
            ))

        return cls(rules, source=source)

    @staticmethod
    def _parse_factor(raw: Dict[str, Any], category: str, where: str) -> EmissionFactor:
        try:
            value = float(raw["co2_per_unit_kg"])
        except (KeyError, TypeError, ValueError):
            raise RuleTableError(where, "factor needs a numeric 'co2_per_unit_kg'")
        if value < 0:
            raise RuleTableError(where, "emission factor must not be negative")

        return EmissionFactor(
            id=str(raw.get("id") or category),
            name=str(raw.get("name") or category),
            unit=Unit.parse(raw.get("unit"), where),
            co2_per_unit_kg=value,
            source=raw.get("source"),
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'RuleTable':
        """Load a table from a YAML file."""
        return cls.from_dict(_load_yaml(path), source=str(path))

    @classmethod
    def default(cls) -> 'RuleTable':
        """Load the table configured under paths.category_rules."""
        return cls.from_yaml(ConfigurationManager().path("paths.category_rules", "config/rules/categories.yaml"))


class UnitTable:
    """
    Raw unit token lookup.

    Each token maps to a canonical unit and a scale factor (1.0 for plain
    aliases, e.g. 0.001 for grams to kilograms).

    Example:
        >>> table = UnitTable.from_dict({"units": {"kilogram": ["kg"]},
        ...                              "scaled": {"g": {"unit": "kilogram", "factor": 0.001}}})
        >>> table.lookup("G")
        (<Unit.KILOGRAM: 'kilogram'>, 0.001)
    """

    def __init__(self, entries: Dict[str, Tuple[Unit, float]], source: str = "<memory>") -> None:
        self._entries = {token.lower(): value for token, value in entries.items()}
        self.source = source

        # Longest tokens first so "liter" wins over "l".
        tokens = sorted(self._entries, key=lambda t: (-len(t), t))
        if tokens:
            self.token_pattern = (
                r"(?:" + "|".join(re.escape(t) for t in tokens) + r")(?![A-Za-zÆØÅæøå0-9])"
            )
        else:
            self.token_pattern = r"(?!)"
        self.pattern = re.compile(self.token_pattern, re.IGNORECASE)

        logger.debug(f"Unit table loaded with {len(self._entries)} tokens from {source}")

    def __contains__(self, token: str) -> bool:
        return token is not None and token.strip().lower() in self._entries

    @property
    def tokens(self) -> List[str]:
        return sorted(self._entries)

    def lookup(self, token: Optional[str]) -> Optional[Tuple[Unit, float]]:
        """Map a raw token to (canonical unit, scale), or None if unknown."""
        if not token:
            return None
        return self._entries.get(token.strip().lower())

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "<memory>") -> 'UnitTable':
        """
        Build a table from the parsed YAML structure.

        Raises:
            RuleTableError: If the structure is malformed or a token is
                mapped twice.
        """
        if not isinstance(data, dict) or not isinstance(data.get("units"), dict):
            raise RuleTableError(source, "expected a 'units' mapping")

        entries: Dict[str, Tuple[Unit, float]] = {}

        def add(token: str, value: Tuple[Unit, float]) -> None:
            key = str(token).strip().lower()
            if key in entries:
                raise RuleTableError(source, f"unit token '{key}' defined twice")
            entries[key] = value

        for unit_name, aliases in data["units"].items():
            unit = Unit.parse(unit_name, source)
            for alias in aliases or []:
                add(alias, (unit, 1.0))

        for token, spec in (data.get("scaled") or {}).items():
            if not isinstance(spec, dict):
                raise RuleTableError(source, f"scaled unit '{token}' needs unit and factor")
            try:
                factor = float(spec["factor"])
            except (KeyError, TypeError, ValueError):
                raise RuleTableError(source, f"scaled unit '{token}' needs a numeric factor")
            add(token, (Unit.parse(spec.get("unit"), source), factor))

        return cls(entries, source=source)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'UnitTable':
        """Load a table from a YAML file."""
        return cls.from_dict(_load_yaml(path), source=str(path))

    @classmethod
    def default(cls) -> 'UnitTable':
        """Load the table configured under paths.unit_rules."""
        return cls.from_yaml(ConfigurationManager().path("paths.unit_rules", "config/rules/units.yaml"))


def _load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise RuleTableError(str(path), "file not found")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise RuleTableError(str(path), f"invalid YAML: {e}")
