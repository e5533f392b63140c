"""Shared fakes for the delivery-layer tests."""

import asyncio
from unittest.mock import MagicMock

import pytest


class FakeLoader:
    """Script loader whose outcome the test controls.

    ``delay`` makes ``load()`` sleep before succeeding; otherwise the test
    resolves ``future`` explicitly (set_result / set_exception).
    """

    def __init__(self, backend=None, delay=None):
        self.backend = backend if backend is not None else MagicMock()
        self.delay = delay
        self.urls = []
        self.future = None

    async def load(self, url):
        self.urls.append(url)
        if self.delay is not None:
            await asyncio.sleep(self.delay)
            return self.backend
        self.future = asyncio.get_running_loop().create_future()
        return await self.future

    def succeed(self):
        self.future.set_result(self.backend)

    def fail(self, exc):
        self.future.set_exception(exc)


@pytest.fixture
def fake_loader():
    return FakeLoader()


@pytest.fixture
def mock_sender():
    return MagicMock()
