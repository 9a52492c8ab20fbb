# app.py - Learning activity simulator service
# - Generates learner populations and simulated xAPI statements on demand
# - Optional submission to the configured statement / learner store

import logging
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from catalog import load_course_catalog, load_verb_catalog
from engines.learner_profiles import LearnerProfileGenerator
from env_validation import ConfigurationError, SimulationSettings, load_settings
from generator import XAPIDataGenerator, session_statistics
from schemas import LearnerProfile
from stores import HttpLearnerStore, HttpStatementStore, TransportError
from xapi import submit_statements

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parent


@asynccontextmanager
async def _lifespan(_: FastAPI):
    try:
        # Validate environment variables first
        from env_validation import validate_environment
        validate_environment()
        yield
    except Exception as e:
        logger.error("Failed to initialize application: %s", str(e), exc_info=True)
        raise


app = FastAPI(title="Learning Activity Simulator", version="1.0.0", lifespan=_lifespan)


class LearnerGenerateBody(BaseModel):
    total_learners: int
    seed: Optional[int] = None
    store: bool = False


class StatementGenerateBody(BaseModel):
    total_learners: Optional[int] = None
    weeks: Optional[int] = None
    seed: Optional[int] = None
    start_date: Optional[date] = None
    submit: Optional[bool] = None
    include_statements: bool = False


def _resolve_path(path: str) -> Path:
    candidate = Path(path)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    return ROOT / candidate


def _learners_for(body: StatementGenerateBody, settings: SimulationSettings) -> List[LearnerProfile]:
    if body.total_learners is not None:
        generator = LearnerProfileGenerator(random_seed=settings.seed)
        return generator.generate_learner_profiles(body.total_learners)
    return HttpLearnerStore(settings.api_url).get_learner_profiles()


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/learners/generate")
def generate_learners(body: LearnerGenerateBody):
    generator = LearnerProfileGenerator(random_seed=body.seed)
    try:
        profiles = generator.generate_learner_profiles(body.total_learners)
        stored: Optional[Dict[str, Any]] = None
        if body.store:
            stored = HttpLearnerStore(load_settings().api_url).store_learner_profiles(profiles)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except TransportError as exc:
        logging.getLogger("learnsim.api").error("Failed to store learners: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return {
        "learners": [profile.to_store_dict() for profile in profiles],
        "distribution": LearnerProfileGenerator.distribution_info(profiles),
        "stored": stored,
    }


@app.post("/statements/generate")
def generate_statements(body: StatementGenerateBody):
    try:
        settings = load_settings({"weeks": body.weeks, "seed": body.seed, "submit": body.submit})
        catalog = load_course_catalog(_resolve_path(settings.course_path))
        verbs = load_verb_catalog(_resolve_path(settings.verbs_path) if settings.verbs_path else None)
        learners = _learners_for(body, settings)
        generator = XAPIDataGenerator(
            catalog, verbs, weeks=settings.weeks, random_seed=settings.seed
        )
        sessions = generator.generate_all_sessions(learners, body.start_date)
        statements = generator.statements_for_sessions(learners, sessions)
        if settings.submit:
            submit_statements(HttpStatementStore(settings.api_url), statements)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except TransportError as exc:
        logging.getLogger("learnsim.api").error("Statement generation failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    response: Dict[str, Any] = {
        "learners": len(learners),
        "statement_count": len(statements),
        "statistics": session_statistics(sessions),
        "submitted": settings.submit,
    }
    if body.include_statements:
        response["statements"] = statements
    return response
