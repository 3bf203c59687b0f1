"""
Unit tests for the streaming NDJSON decoder.
"""

import io
import pytest

from jsonlite.common.errors import DecodeError
from jsonlite.ingest.coercer import JsonNumber
from jsonlite.ingest.decoder import JsonStreamDecoder, Record, decode_records


def _decode(data: bytes):
    return list(decode_records(io.BytesIO(data)))


class TestDecodeRecords:
    """Tests for decoding well-formed input."""

    def test_one_record_per_line(self):
        records = _decode(b'{"a": 1}\n{"b": "x"}\n')

        assert [dict(r) for r in records] == [{"a": 1}, {"b": "x"}]
        assert [r.line for r in records] == [1, 2]

    def test_blank_lines_skipped(self):
        records = _decode(b'\n{"a": 1}\n\n   \n{"a": 2}')

        assert [r["a"] for r in records] == [1, 2]
        assert records[1].line == 5

    def test_multiple_values_on_one_line(self):
        records = _decode(b'{"a": 1} {"a": 2}{"a": 3}\n')

        assert [r["a"] for r in records] == [1, 2, 3]

    def test_crlf_line_endings(self):
        records = _decode(b'{"a": 1}\r\n{"a": 2}\r\n')

        assert len(records) == 2

    def test_empty_input(self):
        assert _decode(b"") == []

    def test_key_order_preserved(self):
        record = _decode(b'{"z": 1, "a": 2, "m": 3}')[0]

        assert list(record) == ["z", "a", "m"]

    def test_utf8_bom_ignored(self):
        records = _decode(b'\xef\xbb\xbf{"a": 1}\n')

        assert records[0]["a"] == 1

    def test_text_stream(self):
        records = list(decode_records(io.StringIO('{"a": "é"}\n')))

        assert records[0]["a"] == "é"

    def test_nested_values(self):
        record = _decode(b'{"o": {"x": [1, 2.5]}, "n": null, "t": true}')[0]

        assert record["o"]["x"][0] == 1
        assert record["o"]["x"][1] == JsonNumber("2.5")
        assert record["n"] is None
        assert record["t"] is True


class TestNumberPrecision:
    """Tests for number literal handling."""

    def test_integer_literal_is_int(self):
        record = _decode(b'{"a": 42}')[0]

        assert isinstance(record["a"], int)

    def test_large_integer_exact(self):
        record = _decode(b'{"a": 12345678901234567890}')[0]

        assert record["a"] == 12345678901234567890

    def test_fraction_keeps_source_text(self):
        record = _decode(b'{"a": 1.50, "b": 1e400}')[0]

        assert isinstance(record["a"], JsonNumber)
        assert record["a"] == "1.50"
        assert record["b"] == "1e400"


class TestRecord:
    """Tests for the Record mapping."""

    def test_record_is_read_only(self):
        record = Record({"a": 1}, line=3)

        with pytest.raises(TypeError):
            record["a"] = 2

    def test_get_missing_field(self):
        record = Record({"a": 1})

        assert record.get("b") is None
        assert len(record) == 1


class TestDecodeErrors:
    """Tests for malformed input."""

    def test_malformed_line_reports_position(self):
        with pytest.raises(DecodeError) as exc_info:
            _decode(b'{"a":1}\n{"a": }\n')

        error = exc_info.value
        assert error.line == 2
        assert error.column == 7
        assert error.offset == 14

    def test_records_before_error_are_yielded(self):
        decoder = iter(JsonStreamDecoder(io.BytesIO(b'{"a":1}\n{oops}\n')))

        assert next(decoder)["a"] == 1
        with pytest.raises(DecodeError):
            next(decoder)

    def test_truncated_object(self):
        with pytest.raises(DecodeError) as exc_info:
            _decode(b'{"a": 1')

        assert exc_info.value.line == 1

    def test_top_level_array_rejected(self):
        with pytest.raises(DecodeError, match="expected a JSON object"):
            _decode(b'[1, 2]\n')

    def test_top_level_scalar_rejected(self):
        with pytest.raises(DecodeError):
            _decode(b'{"a": 1}\n3\n')

    def test_nan_rejected(self):
        with pytest.raises(DecodeError, match="NaN"):
            _decode(b'{"a": NaN}\n')

    def test_object_spanning_lines_rejected(self):
        with pytest.raises(DecodeError) as exc_info:
            _decode(b'{\n "a": 1\n}\n')

        assert exc_info.value.line == 1

    def test_invalid_utf8(self):
        with pytest.raises(DecodeError, match="UTF-8") as exc_info:
            _decode(b'{"a": 1}\n{"a": "\xff"}\n')

        assert exc_info.value.line == 2
        assert exc_info.value.offset == 16


class TestStreaming:
    """Tests for incremental reading."""

    def test_reads_lazily(self):
        consumed = []

        def lines():
            for i in range(3):
                consumed.append(i)
                yield f'{{"i": {i}}}\n'.encode()

        decoder = iter(JsonStreamDecoder(lines()))
        first = next(decoder)

        assert first["i"] == 0
        assert consumed == [0]

    def test_counts_lines_and_records(self):
        decoder = JsonStreamDecoder(io.BytesIO(b'{"a":1}\n\n{"a":2} {"a":3}\n'))
        records = list(decoder)

        assert len(records) == 3
        assert decoder.lines_read == 3
        assert decoder.records_decoded == 3


class _ChunkReader:
    """Byte source offering only read(size)."""

    def __init__(self, data: bytes):
        self._source = io.BytesIO(data)

    def read(self, size=-1):
        return self._source.read(size)


class TestReadOnlyStreams:
    """Tests for sources without line iteration."""

    def test_lines_split_across_chunks(self):
        data = b'{"a": 1}\n\n{"a": 22, "b": "xyz"}\n{"a": 3}'
        decoder = JsonStreamDecoder(_ChunkReader(data), buffer_size=4)
        records = list(decoder)

        assert [dict(r) for r in records] == [{"a": 1}, {"a": 22, "b": "xyz"}, {"a": 3}]
        assert [r.line for r in records] == [1, 3, 4]
        assert decoder.lines_read == 4

    def test_error_offset_counts_earlier_chunks(self):
        with pytest.raises(DecodeError) as exc_info:
            list(JsonStreamDecoder(_ChunkReader(b'{"a": 1}\n{"a": }\n'), buffer_size=3))

        assert exc_info.value.line == 2
        assert exc_info.value.offset == 15


class TestSurrogateEscapes:
    """Tests for unpaired UTF-16 surrogate escapes."""

    def test_unpaired_surrogate_in_value(self):
        record = _decode(b'{"a": "x\\ud800y"}\n')[0]

        assert record["a"] == "x\ufffdy"

    def test_unpaired_surrogate_in_key_and_nested_values(self):
        record = _decode(b'{"\\udc00k": ["\\ud800", {"n": "\\udfff"}]}\n')[0]

        assert dict(record) == {"\ufffdk": ["\ufffd", {"n": "\ufffd"}]}

    def test_paired_surrogates_kept(self):
        record = _decode(b'{"a": "\\ud83d\\ude00", "b": "\\\\ud800"}\n')[0]

        assert record["a"] == "\U0001F600"
        assert record["b"] == "\\ud800"

    def test_numbers_untouched(self):
        record = _decode(b'{"a": "\\ud800", "b": 1.50}\n')[0]

        assert isinstance(record["b"], JsonNumber)
        assert record["b"] == "1.50"
