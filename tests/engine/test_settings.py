from __future__ import annotations

import json
from dataclasses import FrozenInstanceError

import pytest

from optiswarm.engine.algorithm.config import (
    ADPSOConfig,
    ADPSOConfigData,
    PSOConfig,
    PSOConfigData,
    describe_settings,
    settings_from_mapping,
)
from optiswarm.engine.extensions import LPSOSettings
from optiswarm.foundation.exceptions import InvalidSettingError


class TestBuilder:
    def test_fixed_requires_population_and_budget(self):
        with pytest.raises(ValueError, match="population_size"):
            PSOConfig().max_iterations(10).fixed()

    def test_fluent_chain(self):
        cfg = (
            PSOConfig()
            .population_size(30)
            .max_iterations(200)
            .max_velocity(0.2)
            .boundary_condition("STICK")
            .topology("ring", neighborhood_size=4)
            .convergence(1e-6, window=5)
            .minimize()
            .fixed()
        )
        assert isinstance(cfg, PSOConfigData)
        assert cfg.population_size == 30
        assert cfg.boundary_condition == "stick"
        assert cfg.topology == "ring"
        assert cfg.neighborhood_size == 4
        assert cfg.convergence_window == 5
        assert cfg.fitness_mode == "minimize"

    def test_frozen(self):
        cfg = PSOConfig().population_size(5).max_iterations(5).fixed()
        with pytest.raises(FrozenInstanceError):
            cfg.population_size = 6  # type: ignore[misc]

    def test_adpso_builder(self):
        cfg = ADPSOConfig().population_size(5).max_iterations(5).collision_radius(0.2).fixed()
        assert isinstance(cfg, ADPSOConfigData)
        assert cfg.collision_radius == 0.2
        assert cfg.adaptation_constant == 0.5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"population_size": 0},
            {"max_iterations": -1},
            {"boundary_condition": "wrap"},
            {"topology": "star"},
            {"neighborhood_size": 0},
            {"boundary_damping": 0.0},
            {"fitness_mode": "best"},
            {"convergence_window": 0},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(InvalidSettingError):
            PSOConfigData(**kwargs)

    def test_negative_collision_radius(self):
        with pytest.raises(InvalidSettingError):
            ADPSOConfigData(collision_radius=-0.1)


class TestSettingsFromMapping:
    def test_dashed_and_attribute_keys_are_coerced(self):
        cfg = settings_from_mapping(
            PSOConfigData, {"population-size": "30", "max_velocity": "0.2", "topology": " Ring ", "max-iterations": 5.0}
        )
        assert cfg.population_size == 30
        assert cfg.max_iterations == 5
        assert cfg.max_velocity == 0.2
        assert cfg.topology == "ring"

    def test_empty_mapping_gives_defaults(self):
        assert settings_from_mapping(PSOConfigData, None) == PSOConfigData()

    def test_unknown_key(self):
        with pytest.raises(InvalidSettingError) as excinfo:
            settings_from_mapping(PSOConfigData, {"speed": 1}, owner="pso")
        assert "max-velocity" in str(excinfo.value)
        assert excinfo.value.details["owner"] == "pso"

    def test_non_integer(self):
        with pytest.raises(InvalidSettingError):
            settings_from_mapping(PSOConfigData, {"population-size": 2.5})
        with pytest.raises(InvalidSettingError):
            settings_from_mapping(PSOConfigData, {"constriction": "fast"})

    @pytest.mark.parametrize("value,expected", [("yes", True), ("No", False), (True, True), ("1", True), ("off", False)])
    def test_booleans(self, value, expected):
        assert settings_from_mapping(LPSOSettings, {"strict": value}).strict is expected

    def test_bad_boolean(self):
        with pytest.raises(InvalidSettingError):
            settings_from_mapping(LPSOSettings, {"strict": "maybe"})


class TestDescription:
    def test_describe_settings(self):
        rows = {row["name"]: row for row in describe_settings(PSOConfigData)}
        assert rows["max-velocity"]["default"] == -1.0
        assert "velocity" in rows["max-velocity"]["description"].lower()
        assert rows["population-size"]["default"] == 20

    def test_serialization(self):
        cfg = PSOConfig().population_size(5).max_iterations(7).fixed()
        assert cfg.to_dict()["max_iterations"] == 7
        assert cfg.to_settings()["max-iterations"] == 7
        assert json.loads(cfg.to_json())["population_size"] == 5
        assert settings_from_mapping(PSOConfigData, cfg.to_settings()) == cfg
