"""
Shared fixtures: a chain with two tokens, a lending pool charging a flat
fee of 1, one router quoting TKA -> TKB -> TKA for a 4 token profit on a
500 token borrow, fresh oracle feeds and an executor wired to all of them.
"""

import pytest

from chain import Chain
from config import GWEI
from flash_loan_arbitrage import FlashLoanArbitrage
from models import SecurityConfig, TradeConfig
from mocks import MockLendingPool, MockPriceFeed, MockRouter

NOW = 1_700_000_000
OWNER = "0xOWNER"
ALICE = "0xALICE"
EXECUTOR = "0xEXECUTOR"
TKA = "0xTKA"
TKB = "0xTKB"
POOL_FUNDS = 1_000_000
ROUTER_FUNDS = 10_000_000


def pytest_configure(config):
    config.addinivalue_line("markers", "network: marks tests that require network access")


@pytest.fixture
def chain():
    return Chain(timestamp=NOW, gas_price=30 * GWEI)


@pytest.fixture
def trade_config():
    return TradeConfig(
        max_trade_size=1000,
        min_liquidity=10000,
        max_price_impact_bps=200,
        circuit_breaker_threshold_bps=1000,
        min_profit=0,
        slippage_tolerance_bps=50,
        max_consecutive_failures=3,
    )


@pytest.fixture
def security_config():
    return SecurityConfig(max_gas_price=100 * GWEI, min_timestamp=0, max_price_impact_bps=200)


@pytest.fixture
def pool(chain):
    pool = MockLendingPool(chain, fixed_fee=1)
    chain.mint(TKA, pool.address, POOL_FUNDS)
    return pool


@pytest.fixture
def router(chain):
    router = MockRouter(chain)
    router.set_rate(TKA, TKB, 201, 100)     # 500 TKA -> 1005 TKB
    router.set_rate(TKB, TKA, 505, 1005)    # 1005 TKB -> 505 TKA
    chain.mint(TKA, router.address, ROUTER_FUNDS)
    chain.mint(TKB, router.address, ROUTER_FUNDS)
    return router


@pytest.fixture
def feeds():
    return {
        TKA: MockPriceFeed(answer=2 * 10**8, updated_at=NOW - 60),
        TKB: MockPriceFeed(answer=1 * 10**8, updated_at=NOW - 60),
    }


@pytest.fixture
def executor(chain, pool, router, feeds, trade_config, security_config):
    return FlashLoanArbitrage(
        chain=chain,
        address=EXECUTOR,
        loan_source=pool,
        venues=[router],
        price_feeds=feeds,
        trade_config=trade_config,
        security_config=security_config,
        owner=OWNER,
        staleness_bound=3600,
    )


@pytest.fixture
def balances(chain, pool, router):
    """Snapshot helper: every balance the scenarios can touch."""
    def _snapshot():
        holders = [pool.address, router.address, EXECUTOR, OWNER]
        return {(t, h): chain.balance_of(t, h) for t in (TKA, TKB) for h in holders}
    return _snapshot
