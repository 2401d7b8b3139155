"""Tests for query validation and error mapping."""

from unittest.mock import Mock

import pytest

from app.exceptions import (
    ChannelNotFound,
    InvalidDateFormat,
    MissingParameter,
    NoProgramData,
    NoProgramDataForDate,
)
from app.schemas import EPGResponse, ErrorResponse
from app.services.cache_store import CacheStore
from app.services.epg_query_service import EPGQueryService
from app.services.epg_types import CacheIndex


@pytest.fixture
def service(sample_index: CacheIndex) -> EPGQueryService:
    return EPGQueryService(CacheStore(sample_index))


class TestQuery:
    def test_success_preserves_order(self, service: EPGQueryService) -> None:
        response = service.query("CCTV1", "2024-01-01")

        assert response.model_dump() == {
            "channel_name": "CCTV1",
            "date": "2024-01-01",
            "epg_data": [
                {"start": "12:00", "end": "13:00", "title": "News"},
                {"start": "06:00", "end": "07:00", "title": "Early"},
            ],
        }

    @pytest.mark.parametrize(
        ("channel", "date"),
        [(None, "2024-01-01"), ("CCTV1", None), ("", "2024-01-01"), ("CCTV1", ""), (None, None)],
    )
    def test_missing_parameter(self, service: EPGQueryService, channel, date) -> None:
        with pytest.raises(MissingParameter):
            service.query(channel, date)

    def test_unknown_channel(self, service: EPGQueryService) -> None:
        with pytest.raises(ChannelNotFound):
            service.query("UnknownChannel", "2024-01-01")

    def test_channel_without_programmes(self, service: EPGQueryService) -> None:
        with pytest.raises(NoProgramData):
            service.query("Orphan", "2024-01-01")

    def test_channel_without_programmes_on_date(self, service: EPGQueryService) -> None:
        with pytest.raises(NoProgramDataForDate):
            service.query("CCTV1", "2023-12-31")

    def test_invalid_date_checked_before_lookup(self) -> None:
        store = Mock(spec=CacheStore)
        service = EPGQueryService(store)

        with pytest.raises(InvalidDateFormat):
            service.query("X", "2024-1-1")

        store.lookup.assert_not_called()


class TestHandle:
    def test_success(self, service: EPGQueryService) -> None:
        response = service.handle("CCTV1", "2024-01-02")

        assert isinstance(response, EPGResponse)
        assert response.epg_data[0].title == "Morning Show"

    @pytest.mark.parametrize(
        ("channel", "date", "message"),
        [
            (None, "2024-01-01", "Missing parameters: both ch and date are required"),
            ("CCTV1", "2024/01/01", "Invalid date format: 2024/01/01. Expected YYYY-MM-DD"),
            ("Nope", "2024-01-01", "Channel not found: Nope"),
            ("Orphan", "2024-01-01", "No programme data for channel Orphan"),
            ("CCTV1", "2024-02-01", "No programme data for channel CCTV1 on 2024-02-01"),
        ],
    )
    def test_errors_become_payloads(self, service: EPGQueryService, channel, date, message: str) -> None:
        response = service.handle(channel, date)

        assert isinstance(response, ErrorResponse)
        assert response.model_dump() == {"error": message}
