"""Basic quote aggregation example using the built-in DI container."""

import asyncio

from bridge_router.core.container import DIContainer


async def main() -> None:
    router = DIContainer.create_demo_router(reliability_db_path="demo_reliability.db")

    response = await router.get_quotes("ethereum", "polygon", "USDC", 2_500, mode="fastest")
    for quote in response.ranked_quotes:
        if quote.supported:
            print(f"#{quote.rank} {quote.provider_name}: {quote.composite_score:.2f}")
        else:
            print(f"-- {quote.provider_name}: {quote.error}")
    print(router.explain(response))


if __name__ == "__main__":
    asyncio.run(main())
