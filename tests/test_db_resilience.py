"""
Tests for database connection resilience and retry logic.
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from workitems import db


@pytest.mark.asyncio
async def test_check_db_connection_healthy(test_db_engine):
    """Test database health check returns True when DB is available."""
    is_healthy = await db.check_db_connection()
    assert is_healthy is True


@pytest.mark.asyncio
async def test_health_endpoint_reports_database_outage(client):
    with patch("workitems.db.check_db_connection", new_callable=AsyncMock, return_value=False):
        response = await client.get("/health")

    assert response.status_code == 503
    assert response.json()["detail"]["database"] == "disconnected"


@pytest.mark.asyncio
async def test_retry_on_db_error_success():
    """Test retry logic succeeds on first attempt."""
    call_count = 0

    async def successful_func():
        nonlocal call_count
        call_count += 1
        return "success"

    result = await db.retry_on_db_error(successful_func)
    assert result == "success"
    assert call_count == 1


@pytest.mark.asyncio
async def test_retry_on_db_error_retries_on_connection_error():
    """Test retry logic retries on connection errors."""
    call_count = 0

    async def failing_then_success():
        nonlocal call_count
        call_count += 1
        if call_count < 2:
            raise OperationalError("connection reset by peer", None, None)
        return "success"

    result = await db.retry_on_db_error(failing_then_success, max_retries=3, base_delay=0.01)
    assert result == "success"
    assert call_count == 2


@pytest.mark.asyncio
async def test_retry_on_db_error_fails_after_max_retries():
    """Test retry logic fails after max retries exhausted."""
    call_count = 0

    async def always_failing():
        nonlocal call_count
        call_count += 1
        raise OperationalError("connection timeout", None, None)

    with pytest.raises(OperationalError):
        await db.retry_on_db_error(always_failing, max_retries=2, base_delay=0.01)

    assert call_count == 2


@pytest.mark.asyncio
async def test_retry_on_db_error_no_retry_on_constraint_violation():
    """Test retry logic does NOT retry on non-retryable errors."""
    call_count = 0

    async def constraint_error():
        nonlocal call_count
        call_count += 1
        raise OperationalError("unique constraint violated", None, None)

    with pytest.raises(OperationalError):
        await db.retry_on_db_error(constraint_error, max_retries=3, base_delay=0.01)

    assert call_count == 1
