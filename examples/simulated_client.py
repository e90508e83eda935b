"""
Walkthrough of the simulated client: fund an account, buy at market, rest a
limit order and let it fill as simulated time moves the price.
"""
import asyncio
import logging
from datetime import timedelta
from decimal import Decimal

from simtrade import (
    Amount, BrokerConfig, OrderRequest, OrderStatus, PercentageFee, SimulatedClient
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

async def main():
    # 100 GBP with a 0.25% fee per fill
    client = SimulatedClient.from_config(BrokerConfig(
        currency="GBP",
        initial_balance=Decimal(100),
        fee_model=PercentageFee("0.25")
    ))

    client.set_price("AVAX/GBP", "8.81")

    order_id = await client.place_order(
        OrderRequest.market_buy("AVAX/GBP", Amount.quantity(10))
    )
    order = await client.get_order(order_id)
    assert order.status == OrderStatus.FILLED
    logger.info(f"Market buy {order_id}: {order.filled_quantity} AVAX @ {order.fill_price}, fee {order.fee}")

    limit_id = await client.place_order(
        OrderRequest.limit_sell("AVAX/GBP", Amount.quantity(5), "9.50")
    )
    logger.info(f"Limit sell resting: {(await client.get_order(limit_id)).status.value}")

    client.set_price("AVAX/GBP", "9.75")
    await client.advance(timedelta(minutes=1))

    order = await client.get_order(limit_id)
    logger.info(f"Limit sell {order.status.value} @ {order.fill_price}")

    account = await client.get_account()
    logger.info(f"GBP balance: {account.cash} (buying power {account.buying_power})")
    for asset, position in account.open_positions.items():
        logger.info(f"{asset}: {position.quantity} (value {position.market_value})")

if __name__ == "__main__":
    asyncio.run(main())
