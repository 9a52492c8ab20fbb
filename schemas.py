"""Pydantic schemas for learner profiles, course catalogs and simulated interactions."""

from __future__ import annotations

import math
import re
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

__all__ = [
    "Phase",
    "phase_for_week",
    "ScalarMetric",
    "PhasedMetric",
    "Metric",
    "LearnerMetrics",
    "LearnerProfile",
    "Activity",
    "CourseSection",
    "CourseCatalog",
    "Verb",
    "VerbKind",
    "Score",
    "InteractionResult",
    "LearningInteraction",
    "SessionActivity",
    "LearningSession",
    "METRIC_NAMES",
    "REGULAR_PERSONA_TYPES",
    "OUTLIER_PERSONA_TYPES",
    "COURSE_ACTIVITY_TYPE",
    "parse_duration",
    "format_duration",
]

METRIC_NAMES = ("consistency", "scores", "duration", "effort")
REGULAR_PERSONA_TYPES = ("struggler", "average", "sprinter", "gritty", "coaster")
OUTLIER_PERSONA_TYPES = ("outlierA", "outlierB", "outlierC", "outlierD")
COURSE_ACTIVITY_TYPE = "http://adlnet.gov/expapi/activities/course"

PersonaType = Literal[
    "struggler",
    "average",
    "sprinter",
    "gritty",
    "coaster",
    "outlierA",
    "outlierB",
    "outlierC",
    "outlierD",
]


# ---------------------------------------------------------------------------
# Course phases and learner metrics
# ---------------------------------------------------------------------------


class Phase(str, Enum):
    """Coarse position within the simulated course timeline."""

    START = "start"
    MIDDLE = "middle"
    END = "end"


def phase_for_week(week: int, total_weeks: int) -> Phase:
    """Return the course phase for a zero-based ``week`` index."""

    if total_weeks <= 0:
        raise ValueError("total_weeks must be positive")
    position = week / total_weeks
    if position < 0.33:
        return Phase.START
    if position < 0.67:
        return Phase.MIDDLE
    return Phase.END


class ScalarMetric(BaseModel):
    """Time-invariant metric used by regular personas."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["scalar"] = "scalar"
    value: float = Field(ge=0.0, le=1.0)

    def resolve(self, phase: Phase) -> float:
        return self.value

    def to_raw(self) -> float:
        return self.value


class PhasedMetric(BaseModel):
    """Metric that varies with the course phase (outlier personas)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["phased"] = "phased"
    start: float = Field(ge=0.0, le=1.0)
    middle: float = Field(ge=0.0, le=1.0)
    end: float = Field(ge=0.0, le=1.0)

    def resolve(self, phase: Phase) -> float:
        return getattr(self, Phase(phase).value)

    def to_raw(self) -> Dict[str, float]:
        return {"start": self.start, "middle": self.middle, "end": self.end}


Metric = Annotated[Union[ScalarMetric, PhasedMetric], Field(discriminator="kind")]


def _coerce_metric(value: Any) -> Any:
    # The learner store keeps bare numbers and bare {start, middle, end} objects.
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return {"kind": "scalar", "value": float(value)}
    if isinstance(value, dict) and "kind" not in value:
        if "value" in value:
            return {"kind": "scalar", **value}
        return {"kind": "phased", **value}
    return value


class LearnerMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    consistency: Metric
    scores: Metric
    duration: Metric
    effort: Metric

    @field_validator(*METRIC_NAMES, mode="before")
    @classmethod
    def _accept_store_format(cls, value: Any) -> Any:
        return _coerce_metric(value)

    def value(self, name: str, phase: Phase) -> float:
        if name not in METRIC_NAMES:
            raise KeyError(f"Unknown learner metric: {name}")
        return getattr(self, name).resolve(phase)

    def to_raw(self) -> Dict[str, Any]:
        return {name: getattr(self, name).to_raw() for name in METRIC_NAMES}


class LearnerProfile(BaseModel):
    """Simulated learner created once per run and never mutated."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    email: str
    persona_type: PersonaType = Field(alias="personaType")
    metrics: LearnerMetrics

    @property
    def is_outlier(self) -> bool:
        return self.persona_type in OUTLIER_PERSONA_TYPES

    def metric(self, name: str, phase: Phase) -> float:
        return self.metrics.value(name, phase)

    def to_store_dict(self) -> Dict[str, Any]:
        """Serialise into the learner-store format (camelCase, bare metric values)."""

        return {
            "id": self.id,
            "email": self.email,
            "personaType": self.persona_type,
            "metrics": self.metrics.to_raw(),
        }


# ---------------------------------------------------------------------------
# Course catalog and verbs
# ---------------------------------------------------------------------------


class Activity(BaseModel):
    """Unit of course content supplied by the external course catalog."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    title: str = ""
    difficulty: float = Field(default=0.5, ge=0.0, le=1.0)
    estimated_duration: int = Field(default=15, ge=0, alias="estimatedDuration")
    probability: float = Field(default=1.0, ge=0.0, le=1.0)
    rating: float = Field(default=0.6, ge=0.0, le=1.0)
    object_type: str = Field(default=COURSE_ACTIVITY_TYPE, alias="objectType")
    href: str = ""
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def _duration_from_learning_time(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "estimatedDuration" in data or "estimated_duration" in data:
            return data
        typical = data.get("typicalLearningTime")
        if typical:
            data = dict(data)
            data["estimatedDuration"] = parse_duration(typical)
        return data


class CourseSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    activities: List[Activity] = Field(default_factory=list)


class CourseCatalog(BaseModel):
    """Read-only course structure consumed by the simulator."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    description: str = ""
    sections: List[CourseSection] = Field(default_factory=list)

    def all_activities(self) -> List[Activity]:
        return [activity for section in self.sections for activity in section.activities]

    def find_activity(self, activity_id: str) -> Optional[Activity]:
        for activity in self.all_activities():
            if activity.id == activity_id:
                return activity
        return None


class Verb(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    type: str = "Verb"
    pref_label: str = Field(alias="prefLabel")
    definition: str = ""


class VerbKind(str, Enum):
    """Semantic learning events emitted by the event sequencer."""

    INITIALIZED = "initialized"
    LAUNCHED = "launched"
    PROGRESSED = "progressed"
    SCORED = "scored"
    PASSED = "passed"
    FAILED = "failed"
    COMPLETED = "completed"
    RATED = "rated"
    EXITED = "exited"


# ---------------------------------------------------------------------------
# Simulated interactions and sessions
# ---------------------------------------------------------------------------


class Score(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw: float
    min: float = 0
    max: float = 100
    scaled: float = Field(ge=0.0, le=1.0)


class InteractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Optional[bool] = None
    completion: Optional[bool] = None
    progress: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    duration: Optional[str] = None
    score: Optional[Score] = None


class LearningInteraction(BaseModel):
    model_config = ConfigDict(frozen=True)

    verb_kind: VerbKind
    timestamp: datetime
    result: Optional[InteractionResult] = None


class SessionActivity(BaseModel):
    """One activity pass inside a learning session."""

    model_config = ConfigDict(frozen=True)

    activity: Activity
    start_time: datetime
    end_time: datetime
    duration: int
    completed: bool
    interactions: List[LearningInteraction] = Field(default_factory=list)


class LearningSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    learner_id: str
    start_time: datetime
    end_time: datetime
    total_duration: int
    activities: List[SessionActivity] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# ISO-8601 duration helpers
# ---------------------------------------------------------------------------

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
DEFAULT_DURATION_MINUTES = 15


def parse_duration(duration: Optional[str]) -> int:
    """Parse a ``PT#H#M#S`` duration into whole minutes (seconds round up).

    Missing or unparseable values fall back to 15 minutes.
    """

    if not duration:
        return DEFAULT_DURATION_MINUTES
    match = _DURATION_RE.search(duration)
    if not match:
        return DEFAULT_DURATION_MINUTES
    hours, minutes, seconds = (int(group or 0) for group in match.groups())
    return hours * 60 + minutes + math.ceil(seconds / 60)


def format_duration(minutes: float) -> str:
    """Format a minute count as ``PT{h}H{m}M{s}S`` omitting zero components."""

    if minutes < 0:
        raise ValueError("duration must not be negative")
    total_seconds = int(round(minutes * 60))
    hours, remainder = divmod(total_seconds, 3600)
    mins, secs = divmod(remainder, 60)
    parts = []
    if hours:
        parts.append(f"{hours}H")
    if mins:
        parts.append(f"{mins}M")
    if secs:
        parts.append(f"{secs}S")
    if not parts:
        return "PT0S"
    return "PT" + "".join(parts)
