"""End-to-end generation of simulated xAPI statements.

Learner profiles are walked one at a time: the session scheduler plans every
week of the course horizon, the progress engine fills each session with
activity passes and the serializer turns the resulting event traces into
statements. Submission to a statement sink happens once, after all generation.
"""

from __future__ import annotations

import logging
import random
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from catalog import VerbCatalog
from engines.activity_progress import ActivityConfig, ActivityProgressEngine, ProgressStore
from engines.session_scheduler import SessionScheduler
from env_validation import ConfigurationError
from schemas import CourseCatalog, LearnerProfile, LearningSession
from stores import StatementSink, StatementSource
from xapi import StatementSerializer, XAPIStatement, submit_statements

LOGGER = logging.getLogger("learnsim.generator")

ProgressCallback = Callable[[float], None]

DEFAULT_LEAD_DAYS = 14


def default_start_date() -> date:
    """Courses start two weeks from today."""

    return datetime.now(timezone.utc).date() + timedelta(days=DEFAULT_LEAD_DAYS)


class XAPIDataGenerator:
    def __init__(
        self,
        catalog: CourseCatalog | None,
        verbs: VerbCatalog | None = None,
        *,
        weeks: int = 12,
        config: ActivityConfig | None = None,
        random_seed: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if catalog is None:
            raise ConfigurationError("A course catalog must be loaded before generation")
        if weeks <= 0:
            raise ConfigurationError("weeks must be positive")
        self.catalog = catalog
        self.verbs = verbs or VerbCatalog()
        self.weeks = weeks
        self.rng = rng or random.Random(random_seed)
        self.store = ProgressStore()
        self.engine = ActivityProgressEngine(
            catalog,
            weeks,
            config=config,
            store=self.store,
            rng=self.rng,
        )
        self.scheduler = SessionScheduler(self.engine, rng=self.rng)
        self.serializer = StatementSerializer(catalog, self.verbs)

    # ------------------------------------------------------------------
    def generate_all_sessions(
        self,
        learners: Sequence[LearnerProfile],
        start_date: date | None = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, List[LearningSession]]:
        """Generate sessions for every learner, keyed by learner id."""

        start = start_date or default_start_date()
        sessions: Dict[str, List[LearningSession]] = {}
        total = len(learners)
        for index, learner in enumerate(learners, start=1):
            learner_sessions = self.scheduler.generate_learner_sessions(learner, start)
            sessions[learner.id] = learner_sessions
            LOGGER.info(
                "Generated %s sessions for learner %s (%s)",
                len(learner_sessions),
                learner.id,
                learner.persona_type,
            )
            if on_progress is not None:
                on_progress(index / total * 100)
        return sessions

    def statements_for_sessions(
        self,
        learners: Sequence[LearnerProfile],
        sessions: Dict[str, List[LearningSession]],
    ) -> List[XAPIStatement]:
        """Serialise all sessions into statements ordered by timestamp."""

        statements: List[XAPIStatement] = []
        for learner in learners:
            for session in sessions.get(learner.id, []):
                statements.extend(self.serializer.statements_for_session(learner, session))
        statements.sort(key=lambda statement: statement["timestamp"])
        return statements

    def generate_statements(
        self,
        learners: Sequence[LearnerProfile],
        start_date: date | None = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[XAPIStatement]:
        sessions = self.generate_all_sessions(learners, start_date, on_progress)
        LOGGER.info("Session statistics: %s", session_statistics(sessions))
        return self.statements_for_sessions(learners, sessions)

    def generate_and_save(
        self,
        learners: Sequence[LearnerProfile],
        sink: StatementSink,
        start_date: date | None = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> int:
        """Generate statements and submit them in one batch; sink failures propagate."""

        statements = self.generate_statements(learners, start_date, on_progress)
        LOGGER.info("Generated %s statements", len(statements))
        return submit_statements(sink, statements)


def session_statistics(sessions: Dict[str, List[LearningSession]]) -> Dict[str, float]:
    """Totals and averages over generated sessions."""

    total_learners = len(sessions)
    total_sessions = sum(len(items) for items in sessions.values())
    total_activities = sum(len(s.activities) for items in sessions.values() for s in items)
    total_duration = sum(s.total_duration for items in sessions.values() for s in items)
    return {
        "learners": total_learners,
        "sessions": total_sessions,
        "activities": total_activities,
        "avg_sessions_per_learner": round(total_sessions / total_learners, 1) if total_learners else 0.0,
        "avg_activities_per_session": round(total_activities / total_sessions, 1) if total_sessions else 0.0,
        "avg_session_minutes": round(total_duration / total_sessions, 1) if total_sessions else 0.0,
    }


def validate_service(source: StatementSource) -> bool:
    """Return ``True`` when ``source`` answers a statement query."""

    try:
        source.get_statements()
    except Exception as exc:
        LOGGER.error("Service validation failed: %s", exc)
        return False
    return True


__all__ = [
    "XAPIDataGenerator",
    "session_statistics",
    "validate_service",
    "default_start_date",
]
