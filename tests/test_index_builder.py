"""Tests for CacheIndex construction."""

from app.services.epg_types import (
    BuildStats,
    DisplayName,
    GuideChannel,
    GuideDocument,
    GuideProgramme,
    ProgramItem,
)
from app.services.index_builder_service import build_index, lookup_name
from app.services.xmltv_parser_service import parse_guide_bytes


def _programme(channel: str, start: str, stop: str, title: str) -> GuideProgramme:
    return GuideProgramme(channel=channel, start=start, stop=stop, title=title)


class TestBuildIndex:
    def test_sample_guide(self, sample_guide: bytes) -> None:
        stats = BuildStats()
        index = build_index(parse_guide_bytes(sample_guide), stats=stats)

        assert index.channel_map == {"CCTV1": "c1", "湖南卫视": "c3"}
        assert index.program_data["c1"] == {
            "2024-01-01": [ProgramItem(start="12:00", end="13:00", title="News")],
            "2024-01-02": [ProgramItem(start="08:05", end="09:30", title="Morning Show")],
        }
        # Channel without a zh name is still indexed by id
        assert index.program_data["c2"]["2024-01-01"][0].title == "Hidden"
        # Malformed start timestamp skipped
        assert "c3" not in index.program_data
        assert stats.programmes_indexed == 3
        assert stats.programmes_skipped == 1
        assert stats.channels_named == 2

    def test_feed_order_preserved_within_date(self) -> None:
        doc = GuideDocument(programmes=[
            _programme("c1", "20240101200000", "20240101210000", "Late"),
            _programme("c1", "20240101080000", "20240101090000", "Early"),
        ])

        index = build_index(doc)

        assert [item.title for item in index.program_data["c1"]["2024-01-01"]] == ["Late", "Early"]

    def test_date_taken_from_start(self) -> None:
        doc = GuideDocument(programmes=[
            _programme("c1", "20240101233000 +0800", "20240102003000 +0800", "Midnight"),
        ])

        index = build_index(doc)

        assert index.program_data["c1"] == {
            "2024-01-01": [ProgramItem(start="23:30", end="00:30", title="Midnight")],
        }

    def test_bad_stop_skips_programme(self) -> None:
        doc = GuideDocument(programmes=[
            _programme("c1", "20240101080000", "2024010109", "Bad stop"),
            _programme("c1", "20240101090000", "20240101100000", "Good"),
        ])

        index = build_index(doc)

        assert [item.title for item in index.program_data["c1"]["2024-01-01"]] == ["Good"]

    def test_dangling_channel_reference_tolerated(self) -> None:
        doc = GuideDocument(
            channels=[GuideChannel(id="c1", display_names=[DisplayName("One", "zh")])],
            programmes=[_programme("ghost", "20240101080000", "20240101090000", "Ghost")],
        )

        index = build_index(doc)

        assert index.channel_map == {"One": "c1"}
        assert "ghost" in index.program_data

    def test_duplicate_names_last_wins(self) -> None:
        doc = GuideDocument(channels=[
            GuideChannel(id="first", display_names=[DisplayName("Same", "zh")]),
            GuideChannel(id="second", display_names=[DisplayName("Same", "zh")]),
        ])

        assert build_index(doc).channel_map == {"Same": "second"}

    def test_empty_document(self) -> None:
        index = build_index(GuideDocument())

        assert index.channel_map == {}
        assert index.program_data == {}


class TestLookupName:
    def test_first_non_empty_zh(self) -> None:
        channel = GuideChannel(id="c", display_names=[
            DisplayName("", "zh"),
            DisplayName("English", "en"),
            DisplayName("中文", "zh"),
            DisplayName("Other", "zh"),
        ])
        assert lookup_name(channel) == "中文"

    def test_no_zh_name(self) -> None:
        channel = GuideChannel(id="c", display_names=[DisplayName("English", "en")])
        assert lookup_name(channel) is None

    def test_lang_is_exact(self) -> None:
        channel = GuideChannel(id="c", display_names=[DisplayName("Hans", "zh-CN")])
        assert lookup_name(channel) is None
