import json

import pytest

from bridge_router.core.config import EngineConfig
from bridge_router.domain.exceptions import InvalidWeightsError
from bridge_router.domain.models import OptimizationMode, RankingWeights
from bridge_router.reliability.calculator import ReliabilitySettings


def test_defaults_match_documented_values():
    config = EngineConfig()

    assert config.optimization_mode is OptimizationMode.BALANCED
    assert config.provider_timeout_seconds == 10.0
    assert config.enable_reliability is True
    assert config.apply_reliability is True
    assert config.default_reliability_score == 70.0
    assert config.weight_overrides == {}
    assert config.reliability == ReliabilitySettings()


def test_from_env_reads_prefixed_variables(monkeypatch):
    monkeypatch.setenv("BRIDGE_ROUTER_DEFAULT_MODE", "fastest")
    monkeypatch.setenv("BRIDGE_ROUTER_PROVIDER_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("BRIDGE_ROUTER_APPLY_RELIABILITY", "off")
    monkeypatch.setenv("BRIDGE_ROUTER_RELIABILITY_MIN_ATTEMPTS", "10")
    monkeypatch.setenv("BRIDGE_ROUTER_RELIABILITY_PENALTY_BELOW_THRESHOLD", "12.5")
    monkeypatch.setenv(
        "BRIDGE_ROUTER_WEIGHT_OVERRIDES",
        json.dumps({"balanced": {"cost": 1, "speed": 1, "reliability": 1, "liquidity": 1}}),
    )

    config = EngineConfig.from_env()

    assert config.optimization_mode is OptimizationMode.FASTEST
    assert config.provider_timeout_seconds == 2.5
    assert config.apply_reliability is False
    assert config.enable_reliability is True
    assert config.reliability.min_attempts == 10
    assert config.reliability.penalty_below_threshold == 12.5
    assert config.weight_overrides[OptimizationMode.BALANCED].cost == pytest.approx(0.25)


def test_from_env_rejects_non_numeric_values(monkeypatch):
    monkeypatch.setenv("BRIDGE_ROUTER_PROVIDER_TIMEOUT_SECONDS", "soon")
    with pytest.raises(ValueError):
        EngineConfig.from_env()


def test_from_json_file_merges_with_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "default_mode": "lowest-cost",
                "reliability": {"min_attempts": 3, "cache_ttl_seconds": 60},
                "weight_overrides": {
                    "fastest": {"cost": 0, "speed": 2, "reliability": 1, "liquidity": 1}
                },
            }
        )
    )

    config = EngineConfig.from_file(path)

    assert config.optimization_mode is OptimizationMode.LOWEST_COST
    assert config.provider_timeout_seconds == 10.0
    assert config.reliability.min_attempts == 3
    assert config.reliability.cache_ttl_seconds == 60
    assert config.reliability.high_threshold == 95.0
    assert config.weight_overrides[OptimizationMode.FASTEST].speed == pytest.approx(0.5)


def test_from_yaml_file(tmp_path):
    pytest.importorskip("yaml")
    path = tmp_path / "config.yaml"
    path.write_text("default_mode: fastest\nenable_reliability: false\n")

    config = EngineConfig.from_file(path)

    assert config.optimization_mode is OptimizationMode.FASTEST
    assert config.enable_reliability is False


def test_from_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        EngineConfig.from_file(tmp_path / "missing.json")

    unsupported = tmp_path / "config.toml"
    unsupported.write_text("")
    with pytest.raises(ValueError):
        EngineConfig.from_file(unsupported)


def test_validation_rejects_bad_values():
    with pytest.raises(ValueError):
        EngineConfig(default_mode="cheapest")
    with pytest.raises(ValueError):
        EngineConfig(provider_timeout_seconds=0)
    with pytest.raises(ValueError):
        EngineConfig(default_reliability_score=120)


def test_weight_overrides_reject_unknown_modes_and_zero_totals(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"weight_overrides": {"scenic": {"cost": 1, "speed": 0, "reliability": 0, "liquidity": 0}}}))
    with pytest.raises(ValueError):
        EngineConfig.from_file(path)

    path.write_text(json.dumps({"weight_overrides": {"balanced": {"cost": 0, "speed": 0, "reliability": 0, "liquidity": 0}}}))
    with pytest.raises(InvalidWeightsError):
        EngineConfig.from_file(path)


def test_config_is_immutable():
    config = EngineConfig(
        weight_overrides={
            OptimizationMode.BALANCED: RankingWeights(cost=1, speed=0, reliability=0, liquidity=0)
        }
    )
    with pytest.raises(AttributeError):
        config.default_mode = "fastest"  # type: ignore[misc]
