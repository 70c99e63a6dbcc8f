"""Tests for payload encodings: timestamp marker, metadata JSON, mirror layout."""

import base64
import json
import logging

import pytest

from clipharness.clipboard.formats import (
    TIMESTAMP_ATTRIBUTE,
    attach_metadata,
    decode_metadata,
    decode_payloads,
    encode_metadata,
    encode_payloads,
    now_ms,
    parse_rich_text_timestamp,
    payload_timestamp,
    split_metadata,
    wrap_rich_text,
)
from clipharness.clipboard.types import CopyMetadata, CopyStatus

PNG = b"\x89PNG\r\n\x1a\n\x00\x00"


class TestRichTextTimestamp:
    """Tests for the rich-text timestamp marker."""

    def test_wrap_uses_given_timestamp(self) -> None:
        wrapped = wrap_rich_text("<b>hi</b>", created_at_ms=1700000000123)

        assert wrapped == f'<div {TIMESTAMP_ATTRIBUTE}="1700000000123"><b>hi</b></div>'

    def test_wrap_defaults_to_now(self) -> None:
        before = now_ms()
        stamp = parse_rich_text_timestamp(wrap_rich_text("x"))
        after = now_ms()

        assert stamp is not None
        assert before <= stamp <= after

    def test_parse_round_trips_wrapped_value(self) -> None:
        assert parse_rich_text_timestamp(wrap_rich_text("x", 42)) == 42

    def test_parse_accepts_single_quotes(self) -> None:
        assert parse_rich_text_timestamp("<div data-copy-timestamp='7'>x</div>") == 7

    def test_parse_accepts_bytes(self) -> None:
        assert parse_rich_text_timestamp(b'<div data-copy-timestamp="9">x</div>') == 9

    @pytest.mark.parametrize(
        "html",
        [
            None,
            "",
            "<b>no marker</b>",
            '<div data-copy-timestamp="">x</div>',
            '<div data-copy-timestamp="soon">x</div>',
            b"\xff\xfe",
        ],
    )
    def test_parse_missing_or_unparsable_is_none(self, html: object) -> None:
        assert parse_rich_text_timestamp(html) is None  # type: ignore[arg-type]

    def test_payload_timestamp_reads_rich_text_entry(self) -> None:
        payloads = {"text/plain": "x", "text/html": wrap_rich_text("x", 5)}

        assert payload_timestamp(payloads) == 5
        assert payload_timestamp({"text/plain": "x"}) is None


class TestMetadataEncoding:
    """Tests for CopyMetadata JSON."""

    def test_encode(self) -> None:
        raw = encode_metadata(CopyMetadata("abc", CopyStatus.COMPLETED))

        assert json.loads(raw) == {"sessionId": "abc", "copyStatus": "completed"}

    def test_decode(self) -> None:
        metadata = decode_metadata('{"sessionId": "abc", "copyStatus": "started"}')

        assert metadata == CopyMetadata("abc", CopyStatus.STARTED)

    @pytest.mark.parametrize("raw", [None, ""])
    def test_decode_absent(self, raw: object) -> None:
        assert decode_metadata(raw) is None  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "raw",
        ["{not json", "[1, 2]", '{"sessionId": "abc"}', '{"sessionId": "a", "copyStatus": "x"}'],
    )
    def test_decode_malformed_counts_as_absent(
        self, raw: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="clipharness.clipboard.formats"):
            assert decode_metadata(raw) is None

        assert any("metadata" in r.message for r in caplog.records)

    def test_attach_does_not_mutate_input(self) -> None:
        payloads = {"text/plain": "x"}

        result = attach_metadata(payloads, CopyMetadata("s", CopyStatus.STARTED))

        assert "application/x-copy-metadata" in result
        assert payloads == {"text/plain": "x"}

    def test_split_separates_metadata(self) -> None:
        metadata = CopyMetadata("s", CopyStatus.COMPLETED)
        combined = attach_metadata({"text/plain": "x"}, metadata)

        content, decoded = split_metadata(combined)

        assert content == {"text/plain": "x"}
        assert decoded == metadata

    def test_split_without_metadata(self) -> None:
        content, decoded = split_metadata({"text/plain": "x"})

        assert content == {"text/plain": "x"}
        assert decoded is None


class TestMirrorLayout:
    """Tests for the mirror's JSON payload layout."""

    def test_image_is_base64_in_storage(self) -> None:
        raw = json.loads(encode_payloads({"image/png": PNG, "text/plain": "x"}))

        assert raw["text/plain"] == "x"
        assert raw["image/png"] == base64.b64encode(PNG).decode("ascii")

    def test_decode_restores_bytes(self) -> None:
        payloads = {"image/png": PNG, "text/html": "<b>x</b>"}

        assert decode_payloads(encode_payloads(payloads)) == payloads

    @pytest.mark.parametrize("raw", [None, ""])
    def test_decode_absent_is_empty(self, raw: object) -> None:
        assert decode_payloads(raw) == {}  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "raw",
        ["[]", '{"text/plain": 1}', '{"image/png": "not base64!"}'],
    )
    def test_decode_invalid_raises(self, raw: str) -> None:
        with pytest.raises(ValueError):
            decode_payloads(raw)

    def test_decode_malformed_json_raises(self) -> None:
        with pytest.raises(ValueError):
            decode_payloads("{oops")
