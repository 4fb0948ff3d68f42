"""Pytest configuration and fixtures for integration tests."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest
from dotenv import load_dotenv


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


# Load .env file from project root
env_path = Path(__file__).parents[2] / ".env"
load_dotenv(env_path)


@pytest.fixture(scope="session")
def integration_config() -> dict[str, Any]:
    """Load integration test configuration from environment.

    Returns:
        Dictionary with account credentials and configuration.

    Raises:
        ValueError: If required environment variables are missing.
    """
    username = os.getenv("TRANE_USERNAME")
    password = os.getenv("TRANE_PASSWORD")
    base_url = os.getenv("TRANE_API_BASE_URL", "https://www.tranehome.com")
    house_id = os.getenv("TRANE_HOUSE_ID")

    if not username or not password:
        msg = "Missing required environment variables. Please create .env file with TRANE_USERNAME and TRANE_PASSWORD"
        raise ValueError(msg)

    return {
        "username": username,
        "password": password,
        "base_url": base_url,
        "house_id": int(house_id) if house_id else None,
    }


@pytest.fixture(scope="session")
def integration_state_file(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """State file shared by every integration test so sign-ins are reused.

    The vendor allows only a few sign-ins per hour; reusing one device
    identity and its session keeps the suite inside that budget.
    """
    return tmp_path_factory.mktemp("trane") / "auth-state.json"


@pytest.fixture(autouse=True)
async def rate_limit_delay(request: pytest.FixtureRequest) -> AsyncGenerator[None]:
    """Pause after each integration test so the vendor is not flooded with requests."""
    yield
    if "integration" in request.keywords:
        await asyncio.sleep(2.0)
