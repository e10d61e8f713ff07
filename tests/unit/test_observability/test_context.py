"""Tests for correlation ID context management."""

import asyncio
import uuid

import pytest

from src.observability.context import correlation_id_context, get_correlation_id


class TestCorrelationIdContext:
    """Tests for correlation_id_context manager."""

    def test_unset_by_default(self):
        assert get_correlation_id() is None

    def test_generates_uuid_when_no_id_provided(self):
        with correlation_id_context() as corr_id:
            assert str(uuid.UUID(corr_id)) == corr_id
            assert get_correlation_id() == corr_id

        assert get_correlation_id() is None

    def test_restores_previous_id(self):
        with correlation_id_context("outer"):
            with correlation_id_context("inner") as corr_id:
                assert corr_id == "inner"
                assert get_correlation_id() == "inner"

            assert get_correlation_id() == "outer"

    def test_restores_on_exception(self):
        with pytest.raises(RuntimeError):
            with correlation_id_context("failing"):
                raise RuntimeError("boom")

        assert get_correlation_id() is None

    @pytest.mark.asyncio
    async def test_propagates_into_gathered_tasks(self):
        """Tasks created by gather() see the session id of their parent."""

        async def read_id():
            await asyncio.sleep(0)
            return get_correlation_id()

        with correlation_id_context("session-42"):
            ids = await asyncio.gather(read_id(), read_id(), read_id())

        assert ids == ["session-42"] * 3
