"""Course catalog and verb vocabulary loading."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import requests
from pydantic import ValidationError

from env_validation import ConfigurationError
from schemas import CourseCatalog, Verb, VerbKind

LOGGER = logging.getLogger("learnsim.catalog")

USED_VERBS: tuple[str, ...] = (
    "prescribed",
    "scored",
    "initialized",
    "exited",
    "completed",
    "achieved",
    "failed",
    "passed",
    "rated",
    "searched",
    "progressed",
    "launched",
)

DEFAULT_VERB_BASE = "http://adlnet.gov/expapi/verbs/"


class VerbCatalog:
    """Whitelisted xAPI verbs keyed by their English preferred label."""

    def __init__(self, verbs: Iterable[Verb] = ()) -> None:
        self._by_name: Dict[str, Verb] = {}
        for verb in verbs:
            if verb.pref_label in USED_VERBS:
                self._by_name[verb.pref_label] = verb

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "VerbCatalog":
        return cls(Verb.model_validate(record) for record in records)

    @classmethod
    def from_profile(cls, profile: Dict[str, Any]) -> "VerbCatalog":
        """Extract verb concepts from an xAPI profile document."""

        verbs: List[Verb] = []
        for concept in profile.get("concepts", []):
            if concept.get("type") != "Verb":
                continue
            label = (concept.get("prefLabel") or {}).get("en")
            if label not in USED_VERBS:
                continue
            verbs.append(
                Verb(
                    id=concept["id"],
                    type="Verb",
                    pref_label=label,
                    definition=(concept.get("definition") or {}).get("en", ""),
                )
            )
        return cls(verbs)

    # ------------------------------------------------------------------
    def get(self, name: str) -> Optional[Verb]:
        return self._by_name.get(name)

    def resolve(self, name: str | VerbKind) -> Verb:
        """Return the verb for ``name`` or a synthesised ADL default."""

        label = name.value if isinstance(name, VerbKind) else str(name)
        verb = self._by_name.get(label)
        if verb is not None:
            return verb
        LOGGER.debug("Verb '%s' not in catalog; using default IRI", label)
        return Verb(
            id=f"{DEFAULT_VERB_BASE}{label}",
            type="Verb",
            pref_label=label,
            definition=f"Default definition for {label}",
        )

    def name_for_id(self, verb_id: str) -> str:
        """Reverse lookup from a verb IRI to its semantic name."""

        for name, verb in self._by_name.items():
            if verb.id == verb_id:
                return name
        return verb_id.rstrip("/").rsplit("/", 1)[-1]

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


def _read_json(path: str | Path) -> Any:
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"File not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        try:
            return json.load(fh)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc


def load_course_catalog(path: str | Path) -> CourseCatalog:
    """Load and validate a course catalog JSON document."""

    raw = _read_json(path)
    try:
        catalog = CourseCatalog.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid course catalog {path}: {exc}") from exc
    if not catalog.all_activities():
        raise ConfigurationError(f"Course catalog {path} has no activities")
    return catalog


def load_verb_catalog(path: str | Path | None) -> VerbCatalog:
    """Load verbs from a JSON list or an xAPI profile; ``None`` yields defaults only."""

    if path is None:
        return VerbCatalog()
    raw = _read_json(path)
    try:
        if isinstance(raw, dict):
            return VerbCatalog.from_profile(raw)
        if isinstance(raw, list):
            return VerbCatalog.from_records(raw)
    except (ValidationError, KeyError, TypeError, AttributeError) as exc:
        raise ConfigurationError(f"Invalid verb document {path}: {exc!r}") from exc
    raise ConfigurationError(f"Unsupported verb document in {path}")


def fetch_profile_verbs(url: str, *, timeout: float = 10.0) -> VerbCatalog:
    """Download an xAPI profile and extract the whitelisted verbs."""

    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return VerbCatalog.from_profile(response.json())


__all__ = [
    "USED_VERBS",
    "DEFAULT_VERB_BASE",
    "VerbCatalog",
    "load_course_catalog",
    "load_verb_catalog",
    "fetch_profile_verbs",
]
