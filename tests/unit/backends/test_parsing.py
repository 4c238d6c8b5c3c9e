"""Unit tests for the shared output grammar helpers."""

import pytest
from pkgdeck.backends.parsing import (
    is_newer_version,
    load_json,
    parse_human_size,
    parse_key_value_blocks,
    parse_two_line_blocks,
    split_columns,
)


class TestTwoLineBlocks:
    """Tests for parse_two_line_blocks."""

    def test_parses_header_and_description(self, mock_pacman_search_output: str) -> None:
        """Each result has a repo/name header and an indented description."""
        hits = parse_two_line_blocks(mock_pacman_search_output)

        assert [hit.name for hit in hits] == ["htop", "btop", "glances"]
        assert hits[0].repository == "extra"
        assert hits[0].version == "3.3.0-3"
        assert hits[1].description == "A monitor of system resources, bpytop ported to C++"

    def test_line_without_slash_advances_one_line(self) -> None:
        """A stray line does not swallow the next header."""
        text = "warning: database is stale\nextra/vim 9.1-1\n    Vi Improved"
        hits = parse_two_line_blocks(text)
        assert len(hits) == 1
        assert hits[0].name == "vim"
        assert hits[0].description == "Vi Improved"

    def test_trailing_header_without_description(self) -> None:
        """A final header without a description line is kept."""
        hits = parse_two_line_blocks("aur/yay-bin 12.3.5-1")
        assert hits[0].description == ""


class TestKeyValueBlocks:
    """Tests for parse_key_value_blocks."""

    def test_records_need_name_key(self) -> None:
        """Blocks without the name key are dropped and the last block is flushed."""
        text = "Name : a\nVersion : 1\n\nVersion : 2\n\nName : b\nURL : https://example.org"
        records = parse_key_value_blocks(text)

        assert [record["Name"] for record in records] == ["a", "b"]
        assert records[1]["URL"] == "https://example.org"


class TestSplitColumns:
    """Tests for split_columns."""

    def test_minimum_columns(self) -> None:
        """Lines with too few columns are dropped."""
        assert split_columns("a | b | c", "|", 3) == ["a", "b", "c"]
        assert split_columns("a | b", "|", 3) is None

    def test_whitespace_split(self) -> None:
        """A None separator splits on runs of whitespace."""
        assert split_columns("firefox   128.0  4650", None, 2) == ["firefox", "128.0", "4650"]


class TestHumanSize:
    """Tests for parse_human_size."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("12.5 MB", int(12.5 * 1024**2)),
            ("1,2 GB", int(1.2 * 1024**3)),
            ("512 KiB", 512 * 1024),
            ("100", 100),
            ("8.22 MiB", int(8.22 * 1024**2)),
        ],
    )
    def test_sizes(self, text: str, expected: int) -> None:
        """Units use binary multiples and commas are decimal separators."""
        assert parse_human_size(text) == expected

    @pytest.mark.parametrize("text", ["", "big", "12 parsecs"])
    def test_not_a_size(self, text: str) -> None:
        """Unparseable text yields None."""
        assert parse_human_size(text) is None


class TestVersionComparison:
    """Tests for is_newer_version."""

    def test_numeric_comparison(self) -> None:
        """Segments compare as numbers, not strings."""
        assert is_newer_version("1.10.0", "1.9.3")
        assert not is_newer_version("1.9.3", "1.10.0")

    def test_missing_segments_are_zero(self) -> None:
        """'1.2' and '1.2.0' are equal."""
        assert not is_newer_version("1.2", "1.2.0")
        assert not is_newer_version("1.2.0", "1.2")
        assert is_newer_version("1.2.1", "1.2")


def test_load_json_malformed() -> None:
    """Malformed JSON decodes to None."""
    assert load_json("{not json") is None
    assert load_json('{"a": 1}') == {"a": 1}
