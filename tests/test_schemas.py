import unittest

import pytest
from pydantic import ValidationError

from engines.utils import clamp, round_half_up, round_int
from schemas import (
    Activity,
    LearnerMetrics,
    Phase,
    PhasedMetric,
    ScalarMetric,
    phase_for_week,
)


class PhaseTests(unittest.TestCase):
    def test_phase_boundaries(self):
        self.assertEqual(phase_for_week(0, 12), Phase.START)
        self.assertEqual(phase_for_week(3, 12), Phase.START)
        self.assertEqual(phase_for_week(4, 12), Phase.MIDDLE)
        self.assertEqual(phase_for_week(8, 12), Phase.MIDDLE)
        self.assertEqual(phase_for_week(9, 12), Phase.END)
        self.assertEqual(phase_for_week(11, 12), Phase.END)

    def test_phase_requires_positive_horizon(self):
        with self.assertRaises(ValueError):
            phase_for_week(0, 0)


def test_metrics_accept_store_format():
    metrics = LearnerMetrics.model_validate(
        {
            "consistency": 0.4,
            "scores": {"start": 0.8, "middle": 0.6, "end": 0.2},
            "duration": {"kind": "scalar", "value": 0.6},
            "effort": {"value": 1.0},
        }
    )
    assert isinstance(metrics.consistency, ScalarMetric)
    assert isinstance(metrics.scores, PhasedMetric)
    assert metrics.value("scores", Phase.END) == 0.2
    assert metrics.value("consistency", Phase.END) == 0.4
    assert metrics.to_raw()["scores"] == {"start": 0.8, "middle": 0.6, "end": 0.2}
    with pytest.raises(KeyError):
        metrics.value("motivation", Phase.START)


def test_metrics_outside_unit_interval_are_rejected():
    with pytest.raises(ValidationError):
        LearnerMetrics.model_validate(
            {"consistency": 1.2, "scores": 0.5, "duration": 0.5, "effort": 0.5}
        )


def test_activity_defaults_and_learning_time():
    activity = Activity.model_validate({"id": "a1", "typicalLearningTime": "PT1H30M15S"})
    assert activity.estimated_duration == 91
    assert activity.probability == 1.0
    assert Activity.model_validate({"id": "a2"}).estimated_duration == 15


def test_rounding_helpers_round_halves_up():
    assert round_int(2.5) == 3
    assert round_int(0.5) == 1
    assert round_half_up(0.125, 2) == 0.13
    assert clamp(120, 0, 100) == 100
    assert clamp(-3, 0, 100) == 0
