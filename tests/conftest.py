"""Pytest configuration and fixtures for clanki tests."""

import pytest
from clanki.anki_client import AnkiClient
from mock_anki import MockAnkiConnect


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
async def mock_anki_server():
    """Start a mock AnkiConnect server for testing."""
    server = MockAnkiConnect()
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
def sleeper():
    """Recording replacement for the client's backoff sleep."""
    return RecordingSleep()


@pytest.fixture
async def anki_client(mock_anki_server, sleeper):
    """Create an AnkiClient connected to the mock server."""
    client = AnkiClient(
        url=mock_anki_server.url,
        max_attempts=3,
        retry_delay=0.01,
        sleep=sleeper,
    )
    yield client
    await client.close()


@pytest.fixture
def test_deck_name():
    """Provide a consistent test deck name."""
    return "MCPTest::TestDeck"


@pytest.fixture
def mock_state(mock_anki_server):
    """Provide direct access to mock server state for test setup."""
    return mock_anki_server.state
