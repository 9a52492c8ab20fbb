"""Translate an activity pass into an ordered trace of learning events.

A pass ends in exactly one terminal branch::

    [initialized] -> launched -> [progressed] -> scored -> passed -> completed -> rated
                                              -> scored -> passed -> exited
                                              -> scored -> failed -> exited
                                              -> exited

``initialized`` is only emitted on an activity's first-ever attempt and
``progressed`` only for passes longer than five minutes. Events are spaced
evenly (``duration / 8``) across the pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple, Union

from schemas import InteractionResult, LearningInteraction, Score, VerbKind, format_duration

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PassOutcome:
    """Decision taken by the progress engine for one activity pass."""

    activity_id: str
    start_time: datetime
    duration: int
    progress: float
    first_attempt: bool
    will_score: bool
    completed: bool
    score: Optional[int] = None
    rating: Optional[int] = None


@dataclass(frozen=True)
class EventSequence:
    events: Tuple[LearningInteraction, ...]
    degraded: bool = False

    @property
    def last_kind(self) -> Optional[VerbKind]:
        return self.events[-1].verb_kind if self.events else None


@dataclass(frozen=True)
class GenerationError:
    """Inconsistent pass outcome that cannot be turned into a valid trace."""

    activity_id: str
    reason: str


SequenceResult = Union[EventSequence, GenerationError]


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _score_block(raw: float, *, low: float = 0, high: float = 100) -> Score:
    return Score(raw=raw, min=low, max=high, scaled=(raw - low) / (high - low))


class EventSequencer:
    def __init__(
        self,
        *,
        passing_score: int = 50,
        steps_per_pass: int = 8,
        progress_event_min_duration: int = 5,
    ) -> None:
        if steps_per_pass <= 0:
            raise ValueError("steps_per_pass must be positive")
        self.passing_score = passing_score
        self.steps_per_pass = steps_per_pass
        self.progress_event_min_duration = progress_event_min_duration

    # ------------------------------------------------------------------
    def check(self, outcome: PassOutcome) -> Optional[GenerationError]:
        """Return a :class:`GenerationError` if ``outcome`` is malformed or inconsistent."""

        def error(reason: str) -> GenerationError:
            return GenerationError(activity_id=outcome.activity_id, reason=reason)

        if not isinstance(outcome.start_time, datetime):
            return error(f"pass start time must be a datetime, got {outcome.start_time!r}")
        if not _is_number(outcome.duration) or outcome.duration <= 0:
            return error(f"pass duration must be positive, got {outcome.duration!r}")
        if not _is_number(outcome.progress) or not 0.0 <= outcome.progress <= 1.0:
            return error(f"progress {outcome.progress!r} outside [0, 1]")
        if outcome.will_score:
            if outcome.score is None:
                return error("scored pass is missing a score")
            if not _is_number(outcome.score) or not 0 <= outcome.score <= 100:
                return error(f"score {outcome.score!r} outside [0, 100]")
        elif outcome.completed:
            return error("activity cannot complete without being scored")
        if outcome.rating is not None and (
            not _is_number(outcome.rating) or not 1 <= outcome.rating <= 5
        ):
            return error(f"rating {outcome.rating!r} outside [1, 5]")
        return None

    def sequence(self, outcome: PassOutcome) -> SequenceResult:
        problem = self.check(outcome)
        if problem is not None:
            return problem
        try:
            return self._build(outcome)
        except (TypeError, ValueError) as exc:
            # pydantic's ValidationError is a ValueError
            return GenerationError(activity_id=outcome.activity_id, reason=str(exc))

    def _build(self, outcome: PassOutcome) -> EventSequence:
        step = timedelta(minutes=outcome.duration) / self.steps_per_pass
        pass_duration = format_duration(outcome.duration)
        events: List[LearningInteraction] = []
        clock = outcome.start_time

        def emit(kind: VerbKind, result: Optional[InteractionResult] = None) -> None:
            nonlocal clock
            events.append(LearningInteraction(verb_kind=kind, timestamp=clock, result=result))
            clock = clock + step

        if outcome.first_attempt:
            emit(
                VerbKind.INITIALIZED,
                InteractionResult(success=True, completion=False, progress=0.0),
            )

        emit(VerbKind.LAUNCHED)

        if outcome.duration > self.progress_event_min_duration:
            emit(VerbKind.PROGRESSED, InteractionResult(progress=outcome.progress))

        if outcome.will_score:
            score = _score_block(outcome.score)
            emit(VerbKind.SCORED, InteractionResult(score=score))
            if outcome.score >= self.passing_score:
                emit(VerbKind.PASSED, InteractionResult(score=score, success=True))
                if outcome.completed:
                    emit(
                        VerbKind.COMPLETED,
                        InteractionResult(completion=True, success=True, duration=pass_duration),
                    )
                    if outcome.rating is not None:
                        emit(
                            VerbKind.RATED,
                            InteractionResult(score=_score_block(outcome.rating, low=1, high=5)),
                        )
            else:
                emit(VerbKind.FAILED, InteractionResult(score=score, success=False))

        if events[-1].verb_kind is not VerbKind.RATED:
            emit(VerbKind.EXITED, InteractionResult(duration=pass_duration))

        return EventSequence(events=tuple(events))

    def degraded(self, outcome: PassOutcome) -> EventSequence:
        """Minimal trace used when an outcome cannot be sequenced."""

        timestamp = outcome.start_time
        if not isinstance(timestamp, datetime):
            timestamp = datetime.now(timezone.utc)
        return EventSequence(
            events=(LearningInteraction(verb_kind=VerbKind.INITIALIZED, timestamp=timestamp),),
            degraded=True,
        )

    def events_for(self, outcome: PassOutcome) -> EventSequence:
        """Sequence ``outcome``, logging and degrading instead of failing."""

        result = self.sequence(outcome)
        if isinstance(result, GenerationError):
            _LOGGER.warning(
                "Degrading event trace for activity %s: %s", result.activity_id, result.reason
            )
            return self.degraded(outcome)
        return result


__all__ = [
    "PassOutcome",
    "EventSequence",
    "GenerationError",
    "EventSequencer",
]
