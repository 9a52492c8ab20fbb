"""Serialise simulated learning interactions into xAPI statements.

Every :class:`~schemas.LearningInteraction` becomes one statement: the learner
is the actor (mailbox IRI), the verb is resolved from the verb catalog by its
semantic name and the object is either the activity or, if absent, a default
course object built from the catalog metadata. Statements are validated against
a small local profile before being handed to a statement sink in one batch.
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from catalog import VerbCatalog
from schemas import (
    COURSE_ACTIVITY_TYPE,
    Activity,
    CourseCatalog,
    InteractionResult,
    LearnerProfile,
    LearningInteraction,
    LearningSession,
    Score,
    VerbKind,
)

LOGGER = logging.getLogger("learnsim.xapi")

XAPIStatement = Dict[str, Any]

XAPI_VERSION = "1.0.0"
INSTRUCTOR_MBOX = "mailto:instructor@example.com"
DEFAULT_COURSE_ID = "https://example.com/default"
EXTERNAL_ID_EXTENSION = "https://w3id.org/learning-analytics/learning-management-system/external-id"
COURSE_ID_EXTENSION = "https://example.com/activities/extensions/course_id"
PROGRESS_EXTENSION = "https://w3id.org/xapi/cmi5/result/extensions/progress"

_ISO_DURATION_RE = re.compile(r"^PT(?=\d)(?:\d+H)?(?:\d+M)?(?:\d+(?:\.\d+)?S)?$")

# ---------------------------------------------------------------------------
# Profile validation
# ---------------------------------------------------------------------------


def _require_text(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(message)
    return value.strip()


def validate_statement(statement: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and normalise an xAPI statement according to the local profile."""

    if not isinstance(statement, dict):
        raise ValueError("statement must be a dict")

    _require_text(statement.get("id"), "statement id is required")
    _require_text(statement.get("version"), "statement version is required")
    timestamp = _require_text(statement.get("timestamp"), "timestamp is required")
    try:
        datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"timestamp must be ISO-8601, got '{timestamp}'") from exc

    actor = statement.get("actor")
    if not isinstance(actor, dict):
        raise ValueError("actor must be provided")
    mbox = _require_text(actor.get("mbox"), "actor.mbox is required")
    if not mbox.startswith("mailto:"):
        raise ValueError("actor.mbox must be a mailto: IRI")

    verb = statement.get("verb")
    if not isinstance(verb, dict):
        raise ValueError("verb must be provided")
    verb_id = _require_text(verb.get("id"), "verb.id must be a non-empty string")
    if not (verb_id.startswith("http://") or verb_id.startswith("https://")):
        raise ValueError(f"verb.id must be an http(s) IRI, got '{verb_id}'")
    verb["id"] = verb_id
    display = verb.get("display")
    if not isinstance(display, dict) or not display.get("en"):
        raise ValueError("verb.display.en is required")

    obj = statement.get("object")
    if not isinstance(obj, dict):
        raise ValueError("object must be provided")
    obj["id"] = _require_text(obj.get("id"), "object.id must be a non-empty string")
    definition = obj.get("definition")
    if not isinstance(definition, dict) or not (definition.get("name") or {}).get("en"):
        raise ValueError("object.definition.name.en is required")

    result = statement.get("result")
    if result is not None:
        if not isinstance(result, dict):
            raise ValueError("result must be a dict when provided")
        score = result.get("score")
        if score is not None:
            if not isinstance(score, dict) or "raw" not in score:
                raise ValueError("result.score.raw is required when score is provided")
            score["raw"] = float(score["raw"])
            scaled = score.get("scaled")
            if scaled is not None and not 0.0 <= float(scaled) <= 1.0:
                raise ValueError("result.score.scaled must be between 0 and 1")
        for flag in ("success", "completion"):
            if flag in result:
                result[flag] = bool(result[flag])
        duration = result.get("duration")
        if duration is not None and not _ISO_DURATION_RE.match(str(duration)):
            raise ValueError(f"result.duration must be an ISO-8601 duration, got '{duration}'")

    context = statement.get("context")
    if not isinstance(context, dict):
        raise ValueError("context must be a dict")
    extensions = context.get("extensions") or {}
    if not isinstance(extensions, dict):
        raise ValueError("context.extensions must be a dict")

    return statement


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------


def result_block(result: Optional[InteractionResult]) -> Optional[Dict[str, Any]]:
    if result is None:
        return None
    block: Dict[str, Any] = {}
    if result.score is not None:
        block["score"] = result.score.model_dump()
    if result.success is not None:
        block["success"] = result.success
    if result.completion is not None:
        block["completion"] = result.completion
    if result.duration is not None:
        block["duration"] = result.duration
    if result.progress is not None:
        block["extensions"] = {PROGRESS_EXTENSION: result.progress}
    return block or None


class StatementSerializer:
    """Map interactions of a learner onto xAPI statements."""

    def __init__(self, catalog: CourseCatalog, verbs: VerbCatalog | None = None) -> None:
        self.catalog = catalog
        self.verbs = verbs or VerbCatalog()

    def default_object(self) -> Dict[str, Any]:
        return {
            "id": self.catalog.id or DEFAULT_COURSE_ID,
            "objectType": "Activity",
            "definition": {
                "type": COURSE_ACTIVITY_TYPE,
                "name": {"en": self.catalog.title or "Default Course"},
                "description": {"en": self.catalog.description or ""},
            },
        }

    @staticmethod
    def activity_object(activity: Activity) -> Dict[str, Any]:
        definition: Dict[str, Any] = {
            "type": activity.object_type,
            "name": {"en": activity.title or activity.id},
            "extensions": {EXTERNAL_ID_EXTENSION: activity.id},
        }
        if activity.description:
            definition["description"] = {"en": activity.description}
        return {
            "id": activity.href or activity.id,
            "objectType": "Activity",
            "definition": definition,
        }

    def build_statement(
        self,
        learner: LearnerProfile,
        interaction: LearningInteraction,
        activity: Activity | None = None,
    ) -> XAPIStatement:
        verb = self.verbs.resolve(interaction.verb_kind)
        statement: XAPIStatement = {
            "id": str(uuid.uuid4()),
            "version": XAPI_VERSION,
            "timestamp": interaction.timestamp.isoformat(),
            "actor": {"mbox": f"mailto:{learner.email}"},
            "verb": {"id": verb.id, "display": {"en": verb.pref_label}},
            "object": self.activity_object(activity) if activity else self.default_object(),
            "context": {
                "instructor": {"mbox": INSTRUCTOR_MBOX},
                "extensions": {
                    COURSE_ID_EXTENSION: activity.id if activity else self.catalog.id,
                },
            },
        }
        result = result_block(interaction.result)
        if result is not None:
            statement["result"] = result
        return statement

    def statements_for_session(
        self, learner: LearnerProfile, session: LearningSession
    ) -> List[XAPIStatement]:
        return [
            self.build_statement(learner, interaction, session_activity.activity)
            for session_activity in session.activities
            for interaction in session_activity.interactions
        ]


def interaction_from_statement(
    statement: XAPIStatement, verbs: VerbCatalog | None = None
) -> LearningInteraction:
    """Recover the semantic interaction carried by ``statement``."""

    verbs = verbs or VerbCatalog()
    kind = VerbKind(verbs.name_for_id(statement["verb"]["id"]))
    timestamp = datetime.fromisoformat(statement["timestamp"].replace("Z", "+00:00"))

    raw = statement.get("result")
    result: Optional[InteractionResult] = None
    if raw:
        extensions = raw.get("extensions") or {}
        result = InteractionResult(
            success=raw.get("success"),
            completion=raw.get("completion"),
            duration=raw.get("duration"),
            progress=extensions.get(PROGRESS_EXTENSION),
            score=Score.model_validate(raw["score"]) if raw.get("score") else None,
        )
    return LearningInteraction(verb_kind=kind, timestamp=timestamp, result=result)


def submit_statements(sink, statements: Iterable[XAPIStatement]) -> int:
    """Validate ``statements`` and hand them to ``sink`` in a single batch."""

    batch = [validate_statement(statement) for statement in statements]
    sink.save_bulk_statements(batch)
    LOGGER.info("Submitted %s xAPI statements", len(batch))
    return len(batch)


__all__ = [
    "XAPI_VERSION",
    "INSTRUCTOR_MBOX",
    "EXTERNAL_ID_EXTENSION",
    "COURSE_ID_EXTENSION",
    "PROGRESS_EXTENSION",
    "StatementSerializer",
    "validate_statement",
    "result_block",
    "interaction_from_statement",
    "submit_statements",
]
