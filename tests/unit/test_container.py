import pytest

from bridge_router import BridgeRouter, DIContainer
from bridge_router.core.config import EngineConfig
from bridge_router.domain.models import OptimizationMode, ProviderDescriptor, RankingWeights
from bridge_router.providers.base import SupportedRoute
from bridge_router.providers.static_adapter import FeeSchedule, StaticRouteAdapter


def _adapters():
    routes = [SupportedRoute.of("ethereum", "polygon", ["USDC"])]
    return [
        (
            StaticRouteAdapter("alpha", routes, FeeSchedule(flat_fee_usd=2, estimated_time_seconds=120)),
            ProviderDescriptor(
                id="alpha",
                display_name="Alpha Bridge",
                supported_chains={"ethereum", "polygon"},
                supported_tokens={"USDC"},
            ),
        )
    ]


@pytest.mark.asyncio
async def test_create_router_wires_engine_and_reliability(tmp_path):
    router = DIContainer.create_router(
        _adapters(),
        config=EngineConfig(),
        reliability_db_path=tmp_path / "reliability.db",
    )

    assert isinstance(router, BridgeRouter)
    response = await router.get_quotes("ethereum", "polygon", "USDC", 100)
    assert response.best_route.provider_id == "alpha"
    assert router.reliability is not None
    assert (tmp_path / "reliability.db").exists()


def test_create_router_without_reliability(tmp_path):
    router = DIContainer.create_router(
        _adapters(),
        config=EngineConfig(enable_reliability=False),
        reliability_db_path=tmp_path / "unused.db",
    )

    with pytest.raises(RuntimeError):
        _ = router.reliability
    assert not (tmp_path / "unused.db").exists()


def test_create_router_requires_adapters(tmp_path):
    with pytest.raises(ValueError):
        DIContainer.create_router([], config=EngineConfig(), reliability_db_path=tmp_path / "db")


@pytest.mark.asyncio
async def test_weight_overrides_reach_strategies(tmp_path):
    config = EngineConfig(
        weight_overrides={
            OptimizationMode.BALANCED: RankingWeights(cost=0, speed=1, reliability=0, liquidity=0)
        }
    )
    router = DIContainer.create_demo_router(
        config=config, reliability_db_path=tmp_path / "demo.db"
    )

    response = await router.get_quotes("ethereum", "polygon", "USDC", 1_000)

    assert response.weights.speed == pytest.approx(1.0)
    assert response.best_route.provider_id == "squid"


def test_demo_router_lists_builtin_providers(tmp_path):
    router = DIContainer.create_demo_router(reliability_db_path=tmp_path / "demo.db")

    ids = {descriptor.id for descriptor in router.supported_providers()}
    assert {"stargate", "squid", "hop", "cbridge", "soroswap"} <= ids
    assert router.provider_status("squid") == "active"
