"""Pytest fixtures for acc_uploader tests."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from helpers import HUB_ID, FakeAcc, FakeClock

from acc_uploader import AccClient, AccConfig


@pytest.fixture
def config() -> AccConfig:
    """Configuration with a hub and callback URL set."""
    return AccConfig(
        client_id="client-id",
        client_secret="client-secret",
        callback_url="https://app.example.com/callback",
        hub_id=HUB_ID,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_acc() -> FakeAcc:
    """Fake Autodesk service; token grants are pre-registered."""
    return FakeAcc()


@pytest_asyncio.fixture
async def client(
    config: AccConfig, fake_acc: FakeAcc, clock: FakeClock
) -> AsyncIterator[AccClient]:
    """AccClient wired to the fake service."""
    async with AccClient(config, transport=fake_acc.transport(), clock=clock) as acc_client:
        yield acc_client
