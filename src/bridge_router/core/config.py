"""Engine configuration management helpers."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping

from bridge_router.domain.models import OptimizationMode, RankingWeights
from bridge_router.reliability.calculator import ReliabilitySettings

ENV_PREFIX = "BRIDGE_ROUTER_"


def _str_to_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _str_to_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def _str_to_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value: {value}") from exc


def _parse_weight_overrides(
    raw: Mapping[str, Any] | None,
) -> Dict[OptimizationMode, RankingWeights]:
    overrides: Dict[OptimizationMode, RankingWeights] = {}
    for mode_name, weights in (raw or {}).items():
        try:
            mode = OptimizationMode(mode_name)
        except ValueError as exc:
            raise ValueError(f"Unknown optimization mode '{mode_name}'") from exc
        if not isinstance(weights, RankingWeights):
            weights = RankingWeights(**weights)
        overrides[mode] = weights.normalized()
    return overrides


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration object loaded once from env or files."""

    default_mode: str = OptimizationMode.BALANCED.value
    provider_timeout_seconds: float = 10.0
    enable_reliability: bool = True
    apply_reliability: bool = True
    default_reliability_score: float = 70.0
    weight_overrides: Dict[OptimizationMode, RankingWeights] = field(
        default_factory=dict
    )
    reliability: ReliabilitySettings = field(default_factory=ReliabilitySettings)

    def __post_init__(self) -> None:
        self.validate()

    @property
    def optimization_mode(self) -> OptimizationMode:
        return OptimizationMode(self.default_mode)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        defaults = cls()
        weights_raw = os.getenv(f"{ENV_PREFIX}WEIGHT_OVERRIDES")
        overrides = (
            _parse_weight_overrides(json.loads(weights_raw))
            if weights_raw
            else defaults.weight_overrides
        )
        return cls(
            default_mode=os.getenv(f"{ENV_PREFIX}DEFAULT_MODE", defaults.default_mode),
            provider_timeout_seconds=_str_to_float(
                os.getenv(f"{ENV_PREFIX}PROVIDER_TIMEOUT_SECONDS"),
                defaults.provider_timeout_seconds,
            ),
            enable_reliability=_str_to_bool(
                os.getenv(f"{ENV_PREFIX}ENABLE_RELIABILITY"),
                defaults.enable_reliability,
            ),
            apply_reliability=_str_to_bool(
                os.getenv(f"{ENV_PREFIX}APPLY_RELIABILITY"),
                defaults.apply_reliability,
            ),
            default_reliability_score=_str_to_float(
                os.getenv(f"{ENV_PREFIX}DEFAULT_RELIABILITY_SCORE"),
                defaults.default_reliability_score,
            ),
            weight_overrides=overrides,
            reliability=cls._reliability_from_env(defaults.reliability),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "EngineConfig":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        raw = file_path.read_text()
        data: Dict[str, Any]
        suffix = file_path.suffix.lower()
        if suffix == ".json":
            data = json.loads(raw)
        elif suffix in {".yaml", ".yml"}:
            data = cls._load_yaml(raw)
        else:
            raise ValueError("Unsupported config format. Use JSON or YAML.")
        return cls(**cls._merge_with_defaults(data))

    def validate(self) -> None:
        allowed = sorted(mode.value for mode in OptimizationMode)
        if self.default_mode not in allowed:
            raise ValueError(f"default_mode must be one of {allowed}")
        if self.provider_timeout_seconds <= 0:
            raise ValueError("provider_timeout_seconds must be greater than zero")
        if not 0 <= self.default_reliability_score <= 100:
            raise ValueError("default_reliability_score must be between 0 and 100")
        if not isinstance(self.weight_overrides, dict):
            raise ValueError("weight_overrides must be a mapping")
        if not isinstance(self.reliability, ReliabilitySettings):
            raise ValueError("reliability must be a ReliabilitySettings instance")

    @classmethod
    def _merge_with_defaults(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        defaults = cls()
        reliability_data = data.get("reliability") or {}
        reliability = ReliabilitySettings(
            **{**asdict(defaults.reliability), **reliability_data}
        )
        merged = {
            "default_mode": data.get("default_mode", defaults.default_mode),
            "provider_timeout_seconds": data.get(
                "provider_timeout_seconds", defaults.provider_timeout_seconds
            ),
            "enable_reliability": data.get(
                "enable_reliability", defaults.enable_reliability
            ),
            "apply_reliability": data.get(
                "apply_reliability", defaults.apply_reliability
            ),
            "default_reliability_score": data.get(
                "default_reliability_score", defaults.default_reliability_score
            ),
            "weight_overrides": _parse_weight_overrides(data.get("weight_overrides")),
            "reliability": reliability,
        }
        return merged

    @staticmethod
    def _reliability_from_env(defaults: ReliabilitySettings) -> ReliabilitySettings:
        values: Dict[str, Any] = {}
        for setting in fields(ReliabilitySettings):
            raw = os.getenv(f"{ENV_PREFIX}RELIABILITY_{setting.name.upper()}")
            default = getattr(defaults, setting.name)
            if isinstance(default, int):
                values[setting.name] = _str_to_int(raw, default)
            else:
                values[setting.name] = _str_to_float(raw, default)
        return ReliabilitySettings(**values)

    @staticmethod
    def _load_yaml(raw: str) -> Dict[str, Any]:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to parse YAML config files") from exc
        return yaml.safe_load(raw) or {}
