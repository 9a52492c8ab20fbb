"""Per-learner activity selection, progress tracking and scoring."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from env_validation import ConfigurationError
from engines.event_sequencer import EventSequencer, PassOutcome
from engines.utils import clamp, round_half_up, round_int
from schemas import (
    Activity,
    CourseCatalog,
    LearnerProfile,
    Phase,
    SessionActivity,
    VerbKind,
    phase_for_week,
)

_LOGGER = logging.getLogger(__name__)

# Keeps duration adjustment finite for learners whose speed metric is zero.
MIN_LEARNING_SPEED = 0.05


@dataclass(frozen=True)
class ActivityConfig:
    max_attempts: int = 3
    passing_score: int = 50
    progress_threshold: float = 0.8
    min_session_time: int = 15
    difficulty_weight: float = 30.0
    attempt_bonus: float = 20.0
    score_variation: float = 15.0
    rating_jitter: float = 1.0


@dataclass
class ActivityProgress:
    current_progress: float = 0.0
    attempts: int = 0
    initialized: bool = False
    completed: bool = False
    last_event_kind: Optional[VerbKind] = None


class ProgressStore:
    """Owned arena of per ``(learner, activity)`` progress and current activities."""

    def __init__(self) -> None:
        self._progress: Dict[Tuple[str, str], ActivityProgress] = {}
        self._current: Dict[str, str] = {}

    def get(self, learner_id: str, activity_id: str) -> ActivityProgress:
        key = (learner_id, activity_id)
        if key not in self._progress:
            self._progress[key] = ActivityProgress()
        return self._progress[key]

    def peek(self, learner_id: str, activity_id: str) -> Optional[ActivityProgress]:
        return self._progress.get((learner_id, activity_id))

    def for_learner(self, learner_id: str) -> Dict[str, ActivityProgress]:
        return {
            activity_id: progress
            for (owner, activity_id), progress in self._progress.items()
            if owner == learner_id
        }

    def current_activity(self, learner_id: str) -> Optional[str]:
        return self._current.get(learner_id)

    def set_current(self, learner_id: str, activity_id: str) -> None:
        self._current[learner_id] = activity_id

    def clear_current(self, learner_id: str) -> None:
        self._current.pop(learner_id, None)

    def __len__(self) -> int:
        return len(self._progress)


class ActivityProgressEngine:
    """Advance one activity at a time until a session's time budget is spent."""

    def __init__(
        self,
        catalog: CourseCatalog,
        total_weeks: int,
        *,
        config: ActivityConfig | None = None,
        store: ProgressStore | None = None,
        sequencer: EventSequencer | None = None,
        rng: random.Random | None = None,
        random_seed: int | None = None,
    ) -> None:
        if catalog is None:
            raise ConfigurationError("A course catalog is required")
        if total_weeks <= 0:
            raise ConfigurationError("total_weeks must be positive")
        self.catalog = catalog
        self.activities: List[Activity] = catalog.all_activities()
        if not self.activities:
            raise ConfigurationError(f"Course {catalog.id!r} has no activities")
        self.total_weeks = total_weeks
        self.config = config or ActivityConfig()
        self.store = store or ProgressStore()
        self.sequencer = sequencer or EventSequencer(passing_score=self.config.passing_score)
        self.rng = rng or random.Random(random_seed)

    # ------------------------------------------------------------------
    def phase(self, week: int) -> Phase:
        return phase_for_week(week, self.total_weeks)

    def metric_value(self, profile: LearnerProfile, name: str, week: int) -> float:
        return profile.metric(name, self.phase(week))

    # ------------------------------------------------------------------
    def eligible_activities(self, profile: LearnerProfile) -> List[Activity]:
        eligible = []
        for activity in self.activities:
            progress = self.store.peek(profile.id, activity.id)
            if progress is None:
                eligible.append(activity)
            elif not progress.completed and progress.attempts < self.config.max_attempts:
                eligible.append(activity)
        return eligible

    def weighted_choice(self, activities: Sequence[Activity]) -> Activity:
        """Pick an activity by cumulative-probability sampling."""

        total = sum(activity.probability for activity in activities)
        if total <= 0:
            return activities[int(self.rng.random() * len(activities))]
        draw = self.rng.random() * total
        cumulative = 0.0
        for activity in activities:
            cumulative += activity.probability
            if cumulative >= draw:
                return activity
        return activities[-1]

    def select_activity(self, profile: LearnerProfile) -> Optional[Activity]:
        """Resume the learner's current activity or pick a new eligible one."""

        current_id = self.store.current_activity(profile.id)
        if current_id is not None:
            current = self.catalog.find_activity(current_id)
            if current is not None:
                return current
            self.store.clear_current(profile.id)

        eligible = self.eligible_activities(profile)
        if not eligible:
            return None
        activity = self.weighted_choice(eligible)
        self.store.set_current(profile.id, activity.id)
        return activity

    # ------------------------------------------------------------------
    @staticmethod
    def adjusted_duration(activity: Activity, learning_speed: float) -> int:
        return round_int(activity.estimated_duration / max(learning_speed, MIN_LEARNING_SPEED))

    @staticmethod
    def update_progress(
        progress: ActivityProgress,
        time_spent: float,
        needed_time: float,
        learning_speed: float,
    ) -> float:
        """Advance ``progress`` and return the applied increment."""

        if needed_time <= 0:
            return 0.0
        increment = min(1 - progress.current_progress, (time_spent / needed_time) * learning_speed)
        increment = max(0.0, increment)
        progress.current_progress = min(
            1.0, round_half_up(progress.current_progress + increment, 3)
        )
        return increment

    def calculate_score(self, profile: LearnerProfile, activity: Activity, week: int) -> int:
        progress = self.store.get(profile.id, activity.id)
        base_score = self.metric_value(profile, "scores", week) * 100
        difficulty_impact = (1 - activity.difficulty) * self.config.difficulty_weight
        attempt_bonus = (progress.attempts - 1) * self.config.attempt_bonus
        consistency = self.metric_value(profile, "consistency", week)
        spread = (1 - consistency) * self.config.score_variation
        variation = self.rng.uniform(-spread / 2, spread / 2) if spread > 0 else 0.0
        return round_int(clamp(base_score + difficulty_impact + attempt_bonus + variation, 0, 100))

    def calculate_rating(self, profile: LearnerProfile, activity: Activity, week: int) -> int:
        """Star rating (1-5) a learner gives after completing ``activity``."""

        consistency = self.metric_value(profile, "consistency", week)
        jitter = (1 - consistency) * self.config.rating_jitter
        noise = self.rng.uniform(-jitter, jitter) if jitter > 0 else 0.0
        return round_int(clamp(1 + activity.rating * 4 + noise, 1, 5))

    # ------------------------------------------------------------------
    def fill_session(
        self,
        profile: LearnerProfile,
        session_duration: int,
        start_time: datetime,
        week: int,
    ) -> List[SessionActivity]:
        """Spend ``session_duration`` minutes on activity passes for ``profile``."""

        cfg = self.config
        passes: List[SessionActivity] = []
        remaining = session_duration
        clock = start_time

        activity = self.select_activity(profile)
        while activity is not None and remaining >= cfg.min_session_time:
            progress = self.store.get(profile.id, activity.id)
            speed = self.metric_value(profile, "duration", week)
            needed = self.adjusted_duration(activity, speed)
            time_spent = min(needed, remaining)
            if time_spent < cfg.min_session_time:
                # remaining >= min_session_time, so the activity alone is shorter than a pass;
                # it stays current and later sessions record nothing either.
                _LOGGER.warning(
                    "Learner %s: %s needs %s min, below the minimum pass length of %s min; "
                    "session ends without activity",
                    profile.id,
                    activity.id,
                    needed,
                    cfg.min_session_time,
                )
                break

            self.update_progress(progress, time_spent, needed, speed)
            will_score = progress.current_progress >= cfg.progress_threshold

            completed = False
            score: Optional[int] = None
            rating: Optional[int] = None
            if will_score:
                progress.attempts += 1
                score = self.calculate_score(profile, activity, week)
                completed = score >= cfg.passing_score or progress.attempts >= cfg.max_attempts
                if completed and score >= cfg.passing_score:
                    rating = self.calculate_rating(profile, activity, week)

            outcome = PassOutcome(
                activity_id=activity.id,
                start_time=clock,
                duration=time_spent,
                progress=progress.current_progress,
                first_attempt=not progress.initialized,
                will_score=will_score,
                completed=completed,
                score=score,
                rating=rating,
            )
            trace = self.sequencer.events_for(outcome)
            if trace.events and trace.events[0].verb_kind is VerbKind.INITIALIZED:
                progress.initialized = True
            progress.last_event_kind = trace.last_kind
            if completed:
                progress.completed = True

            end_time = clock + timedelta(minutes=time_spent)
            passes.append(
                SessionActivity(
                    activity=activity,
                    start_time=clock,
                    end_time=end_time,
                    duration=time_spent,
                    completed=completed,
                    interactions=list(trace.events),
                )
            )
            remaining -= time_spent
            clock = end_time

            if completed:
                self.store.clear_current(profile.id)
                if remaining < cfg.min_session_time:
                    break
                activity = self.select_activity(profile)

        return passes


__all__ = [
    "ActivityConfig",
    "ActivityProgress",
    "ProgressStore",
    "ActivityProgressEngine",
    "MIN_LEARNING_SPEED",
]
