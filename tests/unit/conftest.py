"""
Unit Test Configuration
=======================
Fixtures for pure logic tests - NO I/O ALLOWED.

All unit tests should be completely isolated from:
- Network (RPC, HTTP)
- File system (except tmp_path)
"""

import dataclasses
from types import SimpleNamespace

import pytest
from solders.pubkey import Pubkey


# ============================================================================
# AUTOUSE: ENFORCE I/O ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def isolate_unit_tests(monkeypatch):
    """
    Automatically disable all network I/O for unit tests.
    Any test that accidentally tries to make a network call will fail.
    """
    def block_network(*args, **kwargs):
        raise RuntimeError(
            "Network I/O detected in unit test! "
            "Unit tests must be pure logic with no external dependencies. "
            "Use integration tests for network-dependent code."
        )

    # solana-py's async provider talks over httpx
    try:
        monkeypatch.setattr("httpx.AsyncClient.get", block_network)
        monkeypatch.setattr("httpx.AsyncClient.post", block_network)
    except Exception:
        pass


# ============================================================================
# ADDRESSES
# ============================================================================


def make_key(n: int) -> Pubkey:
    """Deterministic, readable test address."""
    return Pubkey.from_bytes(bytes([n]) * 32)


@pytest.fixture
def keys():
    """Fixed set of role addresses shared by pool and instruction tests."""
    return SimpleNamespace(
        owner=make_key(1),
        mint_a=make_key(2),
        mint_b=make_key(3),
        vault_a=make_key(4),
        vault_b=make_key(5),
        fee_vault=make_key(6),
        pool=make_key(7),
        user=make_key(8),
        user_token_a=make_key(9),
        user_token_b=make_key(10),
        fee_mint=make_key(30),
        fee_receivers=tuple(make_key(20 + i) for i in range(1, 6)),
    )


# ============================================================================
# POOL STATES
# ============================================================================


@pytest.fixture
def pool_nonce(keys, network_config):
    """Bump found for the test pool under the configured program."""
    from ammkit.addresses import find_pool_authority

    _, nonce = find_pool_authority(keys.pool, network_config.program)
    return nonce


@pytest.fixture
def single_fee_state(keys, pool_nonce):
    """A=1000, B=2000 baseline, tolerance 200, no fee."""
    from ammkit.layouts.pool import LayoutVariant, PoolState

    return PoolState(
        variant=LayoutVariant.SINGLE_FEE,
        status=1,
        nonce=pool_nonce,
        k_a=1000,
        k_b=2000,
        tolerance=200,
        fees=(0,),
        owner=keys.owner,
        mint_a=keys.mint_a,
        mint_b=keys.mint_b,
        vault_a=keys.vault_a,
        vault_b=keys.vault_b,
        fee_vault=keys.fee_vault,
    )


@pytest.fixture
def five_tier_state(keys, pool_nonce):
    """Same baseline as the single-fee pool, 0.3% in tier one."""
    from ammkit.layouts.pool import LayoutVariant, PoolState

    return PoolState(
        variant=LayoutVariant.FIVE_TIER,
        status=1,
        nonce=pool_nonce,
        k_a=1000,
        k_b=2000,
        tolerance=200,
        fees=(0.003, 0.0, 0.0, 0.0, 0.0),
        owner=keys.owner,
        mint_a=keys.mint_a,
        mint_b=keys.mint_b,
        vault_a=keys.vault_a,
        vault_b=keys.vault_b,
        fee_vault=keys.fee_vault,
        fee_receivers=keys.fee_receivers,
        fee_mint=keys.fee_mint,
    )


@pytest.fixture
def make_pool(keys, single_fee_state):
    """Build a decoded Pool from the single-fee state with field overrides."""
    from ammkit.state.pool_decoder import Pool

    def _make(state=None, **overrides):
        state = dataclasses.replace(state or single_fee_state, **overrides)
        return Pool.from_state(state, address=str(keys.pool))

    return _make


@pytest.fixture
def single_fee_pool(make_pool):
    return make_pool()


@pytest.fixture
def five_tier_pool(make_pool, five_tier_state):
    return make_pool(five_tier_state)


@pytest.fixture
def reserves():
    """Live balances matching the pool baseline."""
    from ammkit.quoting.swap_math import Reserves

    return Reserves(amount_a=1000, amount_b=2000)
