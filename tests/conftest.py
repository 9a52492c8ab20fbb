import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class FixedRandom(random.Random):
    """Random source whose draws always return the same fraction."""

    def __init__(self, value: float = 0.5) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value

    def uniform(self, a, b):
        return a + (b - a) * self.value

    def randint(self, a, b):
        return a + int((b - a) * self.value)


def build_profile(
    learner_id="1",
    persona_type="average",
    *,
    consistency=0.6,
    scores=0.6,
    duration=0.6,
    effort=0.6,
):
    from schemas import LearnerProfile

    return LearnerProfile(
        id=learner_id,
        email=f"learner_{persona_type.lower()}_{learner_id}@example.com",
        persona_type=persona_type,
        metrics={
            "consistency": consistency,
            "scores": scores,
            "duration": duration,
            "effort": effort,
        },
    )


def build_catalog(*activities):
    from schemas import CourseCatalog

    return CourseCatalog.model_validate(
        {
            "id": "https://example.com/courses/test",
            "title": "Test Course",
            "description": "Course used in unit tests",
            "sections": [{"title": "Only section", "activities": list(activities)}],
        }
    )


@pytest.fixture
def sample_course_path():
    return ROOT / "data" / "sample_course.json"


@pytest.fixture
def sample_catalog(sample_course_path):
    from catalog import load_course_catalog

    return load_course_catalog(sample_course_path)


@pytest.fixture
def fixed_rng():
    return FixedRandom(0.5)


@pytest.fixture
def learner():
    return build_profile()
