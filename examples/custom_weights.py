"""Demonstrates overriding a mode's weights and feeding outcome history."""

import asyncio

from bridge_router.core.config import EngineConfig
from bridge_router.core.container import DIContainer
from bridge_router.domain.models import OptimizationMode, RankingWeights, TransactionOutcome


async def main() -> None:
    config = EngineConfig(
        weight_overrides={
            OptimizationMode.BALANCED: RankingWeights(
                cost=2, speed=1, reliability=6, liquidity=1
            ),
        }
    )
    router = DIContainer.create_demo_router(
        config=config, reliability_db_path="demo_reliability.db"
    )

    for _ in range(12):
        router.record_outcome("hop", "ethereum", "arbitrum", TransactionOutcome.FAILED)
    report = router.route_reliability("hop", "ethereum", "arbitrum")
    print(report.badge.label, "-", report.badge.tooltip)

    response = await router.get_quotes("ethereum", "arbitrum", "USDC", 10_000)
    print(router.explain(response))


if __name__ == "__main__":
    asyncio.run(main())
