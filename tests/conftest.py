"""
Shared fixtures for the simulated broker tests.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from simtrade import AssetPair, BrokerConfig, SimulatedBroker

START = datetime(2025, 12, 17, 18, 30, tzinfo=timezone.utc)


@pytest.fixture
def start_time():
    return START


@pytest.fixture
def aapl():
    return AssetPair.parse("AAPL/USD")


@pytest.fixture
def broker():
    """USD account funded with 1000, zero fees"""
    return SimulatedBroker(BrokerConfig(initial_balance=Decimal(1000), start_time=START))


@pytest.fixture
def make_broker():
    def _make(**kwargs):
        kwargs.setdefault("start_time", START)
        return SimulatedBroker(BrokerConfig(**kwargs))
    return _make
