"""Weekly session planning for simulated learners."""

from __future__ import annotations

import logging
import random
from datetime import date, datetime, time, timedelta, timezone
from typing import List

from engines.activity_progress import ActivityProgressEngine
from engines.utils import clamp, round_int
from schemas import LearnerProfile, LearningSession

_LOGGER = logging.getLogger(__name__)

BASE_SESSION_MINUTES = 60
AVERAGE_METRIC = 0.6
# Maps the [0.2, 1.0] metric range onto roughly [-0.67, 0.67] around the average.
METRIC_NORMALISER = 1.67


class SessionScheduler:
    """Decide how often and how long a learner studies each week.

    Parameters
    ----------
    engine:
        Progress engine that fills every session with activity passes. Its
        ``total_weeks`` defines the simulation horizon.
    rng:
        Random source; defaults to the engine's so one seed drives a run.
    min_duration / max_duration:
        Hard bounds for a session length in minutes.
    """

    def __init__(
        self,
        engine: ActivityProgressEngine,
        *,
        rng: random.Random | None = None,
        base_duration: int = BASE_SESSION_MINUTES,
        min_duration: int = 45,
        max_duration: int = 90,
        max_sessions_per_week: int = 6,
    ) -> None:
        self.engine = engine
        self.rng = rng or engine.rng
        self.base_duration = base_duration
        self.min_duration = min_duration
        self.max_duration = max_duration
        self.max_sessions_per_week = max_sessions_per_week

    @property
    def total_weeks(self) -> int:
        return self.engine.total_weeks

    # ------------------------------------------------------------------
    def sessions_per_week(self, profile: LearnerProfile, week: int) -> int:
        effort = self.engine.metric_value(profile, "effort", week)
        consistency = self.engine.metric_value(profile, "consistency", week)

        weighted = effort * 0.6 + consistency * 0.4
        base_sessions = max(1, round_int(weighted * 5) + 1)

        if consistency >= 0.8:
            stable_chance = 0.9
        elif consistency <= 0.2:
            stable_chance = 0.3
        else:
            stable_chance = 0.7
        if self.rng.random() < stable_chance:
            variance = 0
        else:
            variance = -1 if self.rng.random() < 0.5 else 1

        return int(clamp(base_sessions + variance, 1, self.max_sessions_per_week))

    def session_start_time(self, day: date) -> datetime:
        """Random start between 09:00 and 19:59 on ``day``."""

        hour = 9 + int(self.rng.random() * 11)
        minute = int(self.rng.random() * 60)
        return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)

    def session_duration(self, profile: LearnerProfile, week: int) -> int:
        duration_metric = self.engine.metric_value(profile, "duration", week)
        effort = self.engine.metric_value(profile, "effort", week)
        consistency = self.engine.metric_value(profile, "consistency", week)

        normalized_duration = (duration_metric - AVERAGE_METRIC) * METRIC_NORMALISER
        normalized_effort = (effort - AVERAGE_METRIC) * METRIC_NORMALISER
        normalized_consistency = (consistency - AVERAGE_METRIC) * METRIC_NORMALISER
        multiplier = 1 + (
            normalized_duration * 0.5 + normalized_effort * 0.3 + normalized_consistency * 0.2
        )

        if consistency >= 0.8:
            variance_range = 5
        elif consistency <= 0.2:
            variance_range = 15
        else:
            variance_range = 10
        variance = self.rng.randint(-variance_range, variance_range)

        duration = round_int(self.base_duration * clamp(multiplier, 0.75, 1.5))
        return int(clamp(duration + variance, self.min_duration, self.max_duration))

    # ------------------------------------------------------------------
    def create_session(
        self,
        profile: LearnerProfile,
        week_start: date,
        day_offset: int,
        week: int,
    ) -> LearningSession:
        start_time = self.session_start_time(week_start + timedelta(days=day_offset))
        duration = self.session_duration(profile, week)
        activities = self.engine.fill_session(profile, duration, start_time, week)
        return LearningSession(
            learner_id=profile.id,
            start_time=start_time,
            end_time=start_time + timedelta(minutes=duration),
            total_duration=duration,
            activities=activities,
        )

    def generate_learner_sessions(self, profile: LearnerProfile, start_date: date) -> List[LearningSession]:
        """Generate every session of ``profile`` across the simulation horizon."""

        if isinstance(start_date, datetime):
            start_date = start_date.date()
        sessions: List[LearningSession] = []
        for week in range(self.total_weeks):
            week_start = start_date + timedelta(weeks=week)
            for day_offset in range(self.sessions_per_week(profile, week)):
                sessions.append(self.create_session(profile, week_start, day_offset, week))
        _LOGGER.debug(
            "Generated %s sessions for learner %s (%s)",
            len(sessions),
            profile.id,
            profile.persona_type,
        )
        return sessions


__all__ = ["SessionScheduler", "BASE_SESSION_MINUTES"]
