"""Tests for the pooled aiohttp session factory."""

import pytest

from wis2_subscriber.core.download import create_session


class TestCreateSession:

    @pytest.mark.asyncio
    async def test_pool_and_timeouts(self):
        session = create_session(max_connections=20, max_connections_per_host=4, timeout_total=42)
        try:
            assert session.connector.limit == 20
            assert session.connector.limit_per_host == 4
            assert session.timeout.total == 42
            assert session.timeout.connect == 30
        finally:
            await session.close()
