from datetime import timedelta
from decimal import Decimal

import pytest

from simtrade import (
    Amount, BrokerConfig, InsufficientFunds, NotFound, OrderRequest, OrderStatus,
    PercentageFee, SimulatedClient, TradingClient
)


@pytest.fixture
def client(start_time):
    return SimulatedClient.from_config(BrokerConfig(
        currency="GBP",
        initial_balance=100,
        fee_model=PercentageFee("0.25"),
        start_time=start_time
    ))


def test_simulated_client_is_a_trading_client(client):
    assert isinstance(client, TradingClient)


@pytest.mark.asyncio
async def test_market_buy_with_fee(client):
    client.set_price("AVAX/GBP", "8.81")

    order_id = await client.place_order(OrderRequest.market_buy("AVAX/GBP", Amount.quantity(10)))

    order = await client.get_order(order_id)
    assert order.status == OrderStatus.FILLED
    assert order.fee == Decimal("0.22025")

    account = await client.get_account()
    assert account.cash == Decimal("11.67975")
    assert account.open_positions["AVAX"].quantity == Decimal(10)


@pytest.mark.asyncio
async def test_get_orders_returns_all_placed_orders(client):
    client.set_price("TEN/GBP", 10)
    assert await client.get_orders() == []

    buy_id = await client.place_order(OrderRequest.market_buy("TEN/GBP", Amount.notional(10)))
    sell_id = await client.place_order(OrderRequest.market_sell("TEN/GBP", Amount.notional(5)))

    assert [o.order_id for o in await client.get_orders()] == [buy_id, sell_id]


@pytest.mark.asyncio
async def test_limit_order_lifecycle(client):
    client.set_price("TEN/GBP", 10)
    order_id = await client.place_order(OrderRequest.limit_buy("TEN/GBP", Amount.quantity(2), 9))

    client.set_price("TEN/GBP", 9)
    await client.advance(timedelta(minutes=1))

    order = await client.get_order(order_id)
    assert order.status == OrderStatus.FILLED
    assert client.get_price("TEN/GBP") == Decimal(9)


@pytest.mark.asyncio
async def test_cancel_through_client(client):
    client.set_price("TEN/GBP", 10)
    order_id = await client.place_order(OrderRequest.limit_buy("TEN/GBP", Amount.quantity(1), 5))
    cancelled = await client.cancel_order(order_id)
    assert cancelled.status == OrderStatus.CANCELLED


@pytest.mark.asyncio
async def test_errors_pass_through(client):
    client.set_price("TEN/GBP", 10)
    with pytest.raises(InsufficientFunds):
        await client.place_order(OrderRequest.market_buy("TEN/GBP", Amount.quantity(100)))
    with pytest.raises(NotFound):
        await client.get_order("missing")
