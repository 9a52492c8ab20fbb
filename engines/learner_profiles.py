"""Population generator for simulated learner profiles."""

from __future__ import annotations

import random
from collections import Counter
from typing import Dict, List, Mapping, Sequence

from env_validation import ConfigurationError
from engines.utils import round_half_up, round_int
from personas import PERSONAS, Archetype, PersonaRegistry, level_value
from schemas import METRIC_NAMES, LearnerProfile, Phase


class LearnerProfileGenerator:
    """Create learner profiles whose persona mix follows the configured shares.

    Every metric is drawn uniformly around the archetype's qualitative level
    (``base ± variance``, clamped to ``[0, 1]``). Outliers draw one value per
    course phase. Counts per type are ``round(total × share)``, so the number
    of generated profiles may differ slightly from the requested total.
    """

    def __init__(
        self,
        *,
        registry: PersonaRegistry | None = None,
        rng: random.Random | None = None,
        random_seed: int | None = None,
        variance: float = 0.1,
    ) -> None:
        self.registry = registry or PERSONAS
        self.rng = rng or random.Random(random_seed)
        self.variance = variance

    # ------------------------------------------------------------------
    def random_variation(self, base_value: float, variance: float | None = None) -> float:
        spread = self.variance if variance is None else variance
        low = max(0.0, base_value - spread)
        high = min(1.0, base_value + spread)
        return round_half_up(low + self.rng.random() * (high - low), 2)

    def calculate_counts(self, total_learners: int) -> Dict[str, int]:
        """Return the number of learners per persona type (regular first)."""

        _require_positive_count(total_learners)
        return {
            archetype.type: round_int(total_learners * archetype.share)
            for archetype in self.registry
        }

    # ------------------------------------------------------------------
    def generate_learner_profiles(self, total_learners: int) -> List[LearnerProfile]:
        counts = self.calculate_counts(total_learners)
        profiles: List[LearnerProfile] = []
        next_id = 1
        for archetype in self.registry:
            for _ in range(counts.get(archetype.type, 0)):
                learner_id = str(next_id)
                profiles.append(
                    LearnerProfile(
                        id=learner_id,
                        email=_learner_email(learner_id, archetype.type),
                        persona_type=archetype.type,
                        metrics=self._metrics_for(archetype),
                    )
                )
                next_id += 1
        return profiles

    def _metrics_for(self, archetype: Archetype) -> Dict[str, object]:
        metrics: Dict[str, object] = {}
        for name in METRIC_NAMES:
            level = archetype.levels[name]
            if isinstance(level, Mapping):
                metrics[name] = {
                    "kind": "phased",
                    **{
                        phase.value: self.random_variation(level_value(level[phase.value]))
                        for phase in Phase
                    },
                }
            else:
                metrics[name] = {"kind": "scalar", "value": self.random_variation(level_value(level))}
        return metrics

    # ------------------------------------------------------------------
    @staticmethod
    def distribution_info(profiles: Sequence[LearnerProfile]) -> Dict[str, Dict[str, float]]:
        """Summarise generated profiles as ``{type: {count, percentage}}``."""

        total = len(profiles)
        counts = Counter(profile.persona_type for profile in profiles)
        return {
            persona_type: {
                "count": count,
                "percentage": round_half_up(count / total * 100, 1) if total else 0.0,
            }
            for persona_type, count in counts.items()
        }


def _require_positive_count(total_learners: int) -> None:
    if isinstance(total_learners, bool) or not isinstance(total_learners, int):
        raise ConfigurationError("total_learners must be an integer")
    if total_learners <= 0:
        raise ConfigurationError("total_learners must be positive")


def _learner_email(learner_id: str, persona_type: str) -> str:
    return f"learner_{persona_type.lower()}_{learner_id}@example.com"


def generate_learner_profiles(total_learners: int, *, random_seed: int | None = None) -> List[LearnerProfile]:
    """Convenience wrapper around :class:`LearnerProfileGenerator`."""

    return LearnerProfileGenerator(random_seed=random_seed).generate_learner_profiles(total_learners)


__all__ = [
    "LearnerProfileGenerator",
    "generate_learner_profiles",
]
