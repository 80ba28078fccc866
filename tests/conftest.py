"""
ammkit Test Configuration
=========================
Shared fixtures and pytest markers for the test suite.
"""

import pytest
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# ============================================================================
# PYTEST MARKERS
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "network: marks tests that require network access"
    )
    config.addinivalue_line(
        "markers", "integration: marks integration tests"
    )


# ============================================================================
# SHARED FIXTURES
# ============================================================================

@pytest.fixture
def network_config():
    """Devnet config with the default program id."""
    from ammkit.shared.config.network import NetworkConfig
    return NetworkConfig.preset("devnet")


@pytest.fixture
def silent_logger(monkeypatch):
    """Keep console logging off regardless of the environment."""
    monkeypatch.setattr("ammkit.shared.system.logging.Logger._silent_mode", True)
    yield
