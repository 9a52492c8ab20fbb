import json
import unittest

import pytest

from personas import PERSONAS, PersonaConfigError, PersonaRegistry, level_value


class PersonaRegistryTests(unittest.TestCase):
    def test_default_registry_contains_all_types(self):
        types = [archetype.type for archetype in PERSONAS]
        self.assertEqual(
            types,
            [
                "struggler",
                "average",
                "sprinter",
                "gritty",
                "coaster",
                "outlierA",
                "outlierB",
                "outlierC",
                "outlierD",
            ],
        )

    def test_regular_shares_cover_population_and_outliers_add_on_top(self):
        self.assertAlmostEqual(sum(a.share for a in PERSONAS.personas), 1.0, places=6)
        self.assertAlmostEqual(sum(a.share for a in PERSONAS.outliers), 0.05, places=6)

    def test_outliers_define_levels_per_phase(self):
        for archetype in PERSONAS.outliers:
            self.assertTrue(archetype.is_outlier)
            for name in ("consistency", "scores", "duration", "effort"):
                self.assertEqual(set(archetype.levels[name]), {"start", "middle", "end"})

    def test_get_returns_none_for_unknown_type(self):
        self.assertIsNone(PERSONAS.get("unknown"))
        self.assertEqual(PERSONAS.get("average").share, 0.39)


def test_level_value_maps_qualitative_levels():
    assert level_value("very low") == 0.2
    assert level_value("Low") == 0.4
    assert level_value("average") == 0.6
    assert level_value("high") == 0.8
    assert level_value("very high") == 1.0
    assert level_value("unheard of") == 0.6


def _write(tmp_path, payload):
    path = tmp_path / "personas.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def _metrics(level="average"):
    return {name: level for name in ("consistency", "scores", "duration", "effort")}


def test_registry_rejects_unknown_level(tmp_path):
    path = _write(
        tmp_path,
        {"personas": [{"type": "average", "share": 1.0, "metrics": _metrics("stellar")}]},
    )
    with pytest.raises(PersonaConfigError):
        PersonaRegistry(path)


def test_registry_rejects_duplicate_types(tmp_path):
    entry = {"type": "average", "share": 0.5, "metrics": _metrics()}
    path = _write(tmp_path, {"personas": [entry, dict(entry)]})
    with pytest.raises(PersonaConfigError, match="Duplicate"):
        PersonaRegistry(path)


def test_registry_requires_phased_outlier_levels(tmp_path):
    path = _write(
        tmp_path,
        {
            "personas": [{"type": "average", "share": 0.9, "metrics": _metrics()}],
            "outliers": [{"type": "outlierA", "share": 0.1, "metrics": _metrics("high")}],
        },
    )
    with pytest.raises(PersonaConfigError, match="phase"):
        PersonaRegistry(path)


def test_registry_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        PersonaRegistry(tmp_path / "missing.json")
