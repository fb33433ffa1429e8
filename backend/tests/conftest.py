"""
Pytest configuration and shared fixtures for Intellyo tests.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock, AsyncMock
from typing import Any, Dict, List

# Add backend app to path
sys.path.insert(0, str(Path(__file__).parent.parent / "app"))

from ai_providers import AIProviderClient, ProviderError
from config import Settings
from models import Credential, CredentialRole, ProviderConfig, TestSpec


# ==================== Credentials ====================

@pytest.fixture
def credentials() -> Dict[str, Credential]:
    """Known credentials so rendered output is predictable."""
    return {
        CredentialRole.STANDARD_USER.value: Credential(email="user@example.com", password="user-pass"),
        CredentialRole.PRIVILEGED_USER.value: Credential(email="admin@example.com", password="admin-pass"),
    }


# ==================== Provider Fixtures ====================

def make_provider(kind: str, response: str = None, error: Exception = None, requires_api_key: bool = False):
    """Create a mock provider whose send_prompt returns `response` or raises `error`."""
    provider = Mock(spec=AIProviderClient)
    provider.kind = kind
    provider.requires_api_key = requires_api_key
    if error is not None:
        provider.send_prompt = AsyncMock(side_effect=error)
    else:
        provider.send_prompt = AsyncMock(return_value=response)
    return provider


@pytest.fixture
def provider_factory():
    """Factory for mock providers."""
    return make_provider


@pytest.fixture
def mock_notify():
    """Record broadcast events instead of sending them."""
    return AsyncMock()


@pytest.fixture
def ollama_config() -> ProviderConfig:
    return ProviderConfig(kind="ollama", model="llama3.2:3b")


# ==================== Sample AI Output ====================

@pytest.fixture
def sample_ai_suite() -> List[Dict[str, Any]]:
    """Two tests in the shape the suite prompt asks for."""
    return [
        {
            "name": "Home page loads",
            "description": "Landing page renders",
            "steps": [
                {"type": "navigate", "value": "/"},
                {"type": "wait", "timeout": 1000},
                {"type": "screenshot", "name": "home.png"},
                {"type": "assert", "target": "body"},
            ],
        },
        {
            "name": "User can log in",
            "steps": [
                {"type": "navigate", "value": "/login"},
                {"type": "input", "target": "#email", "value": "user@example.com"},
                {"type": "input", "target": "#password", "value": "secret"},
                {"type": "tap", "target": "button[type='submit']"},
                {"type": "screenshot", "name": "after-login.png"},
            ],
        },
    ]


@pytest.fixture
def sample_spec() -> TestSpec:
    """A spec mixing valid steps with one the renderer must skip."""
    return TestSpec(
        name="Checkout",
        steps=[
            {"type": "navigate", "value": "/checkout"},
            {"type": "bogus-type", "value": "x"},
            {"type": "screenshot", "name": "checkout.png"},
        ],
    )


# ==================== Settings ====================

@pytest.fixture
def test_settings(tmp_path, credentials) -> Settings:
    """Settings pointing at a temporary test directory."""
    return Settings(
        test_dir=str(tmp_path / "tests"),
        public_dir=None,
        credentials=credentials,
        runner_command=[sys.executable, "-c", "print('runner ok')"],
    )


@pytest.fixture
def provider_error() -> ProviderError:
    return ProviderError("connection refused")
