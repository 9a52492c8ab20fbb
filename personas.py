"""Learner persona configuration loader."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

from schemas import METRIC_NAMES, OUTLIER_PERSONA_TYPES, REGULAR_PERSONA_TYPES, Phase


class PersonaConfigError(ValueError):
    """Raised when ``personas.json`` contains invalid data."""


LEVEL_VALUES: Dict[str, float] = {
    "very low": 0.2,
    "low": 0.4,
    "average": 0.6,
    "high": 0.8,
    "very high": 1.0,
}
DEFAULT_LEVEL_VALUE = LEVEL_VALUES["average"]

_PHASES = tuple(phase.value for phase in Phase)

LevelSpec = Union[str, Mapping[str, str]]


def level_value(level: str) -> float:
    """Map a qualitative level (``"very low"`` .. ``"very high"``) onto ``[0, 1]``."""

    return LEVEL_VALUES.get(str(level).strip().lower(), DEFAULT_LEVEL_VALUE)


@dataclass(frozen=True)
class Archetype:
    """Immutable persona or outlier definition."""

    id: str
    type: str
    share: float
    levels: Mapping[str, LevelSpec]

    @property
    def is_outlier(self) -> bool:
        return self.type in OUTLIER_PERSONA_TYPES


class PersonaRegistry:
    """Load persona and outlier archetypes from ``personas.json``."""

    def __init__(self, path: str | Path | None = None) -> None:
        base_path = Path(__file__).resolve().parent
        self.path = Path(path) if path is not None else base_path / "personas.json"
        self._personas: List[Archetype] = []
        self._outliers: List[Archetype] = []
        self.reload()

    # ------------------------------------------------------------------
    def reload(self) -> None:
        """Reload archetypes from disk and validate the structure."""

        if not self.path.exists():
            raise FileNotFoundError(f"Personas file not found: {self.path}")

        with self.path.open("r", encoding="utf-8") as fh:
            raw = json.load(fh)

        if not isinstance(raw, dict):
            raise PersonaConfigError("Personas file must contain a JSON object")

        personas = self._parse_section(raw.get("personas"), "personas", outlier=False)
        outliers = self._parse_section(raw.get("outliers", []), "outliers", outlier=True)
        if not personas:
            raise PersonaConfigError("Personas file must define at least one regular persona")

        seen: set[str] = set()
        for archetype in personas + outliers:
            if archetype.type in seen:
                raise PersonaConfigError(f"Duplicate persona type detected: {archetype.type}")
            seen.add(archetype.type)

        self._personas = personas
        self._outliers = outliers

    def _parse_section(self, entries, section: str, *, outlier: bool) -> List[Archetype]:
        if not isinstance(entries, list):
            raise PersonaConfigError(f"'{section}' must be a JSON list")

        allowed = OUTLIER_PERSONA_TYPES if outlier else REGULAR_PERSONA_TYPES
        archetypes: List[Archetype] = []
        for idx, entry in enumerate(entries, start=1):
            if not isinstance(entry, dict):
                raise PersonaConfigError(f"{section} entry #{idx} must be a JSON object")

            persona_type = str(entry.get("type", "")).strip()
            if persona_type not in allowed:
                raise PersonaConfigError(
                    f"{section} entry #{idx} has unsupported type '{persona_type}'"
                )

            try:
                share = float(entry.get("share"))
            except (TypeError, ValueError) as exc:
                raise PersonaConfigError(f"{persona_type} has a non-numeric share") from exc
            if not 0.0 <= share <= 1.0:
                raise PersonaConfigError(f"{persona_type} share must be within [0, 1]")

            metrics = entry.get("metrics")
            if not isinstance(metrics, dict):
                raise PersonaConfigError(f"{persona_type} is missing a 'metrics' object")

            levels: Dict[str, LevelSpec] = {}
            for name in METRIC_NAMES:
                if name not in metrics:
                    raise PersonaConfigError(f"{persona_type} is missing metric '{name}'")
                levels[name] = self._parse_level(persona_type, name, metrics[name], outlier=outlier)

            archetypes.append(
                Archetype(
                    id=str(entry.get("id", idx)),
                    type=persona_type,
                    share=share,
                    levels=levels,
                )
            )
        return archetypes

    @staticmethod
    def _parse_level(persona_type: str, name: str, value, *, outlier: bool) -> LevelSpec:
        if outlier:
            if not isinstance(value, dict):
                raise PersonaConfigError(
                    f"{persona_type}.{name} must map each phase to a level"
                )
            phased: Dict[str, str] = {}
            for phase in _PHASES:
                level = str(value.get(phase, "")).strip().lower()
                if level not in LEVEL_VALUES:
                    raise PersonaConfigError(
                        f"{persona_type}.{name}.{phase} has unknown level '{level}'"
                    )
                phased[phase] = level
            return phased

        level = str(value).strip().lower()
        if level not in LEVEL_VALUES:
            raise PersonaConfigError(f"{persona_type}.{name} has unknown level '{level}'")
        return level

    # ------------------------------------------------------------------
    @property
    def personas(self) -> List[Archetype]:
        return list(self._personas)

    @property
    def outliers(self) -> List[Archetype]:
        return list(self._outliers)

    def get(self, persona_type: str) -> Optional[Archetype]:
        for archetype in self:
            if archetype.type == persona_type:
                return archetype
        return None

    def distribution(self) -> Dict[str, float]:
        """Return the configured share per persona type (regular first)."""

        return {archetype.type: archetype.share for archetype in self}

    def __iter__(self) -> Iterable[Archetype]:
        return iter(self._personas + self._outliers)


PERSONAS = PersonaRegistry()
"""Singleton registry used by the learner profile generator."""
