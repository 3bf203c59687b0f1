"""
Streaming decoder for newline-delimited JSON.

Reads a byte stream one line at a time and yields a Record for every
JSON object found. Number literals are never converted to floats here:
integer literals become exact Python ints and fractional or exponent
literals keep their source text as JsonNumber.
"""

import io
import json
import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, Iterator, Optional

from jsonlite.common.errors import DecodeError
from jsonlite.ingest.coercer import JsonNumber

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_SURROGATE_ESCAPE = re.compile(r"\\u[dD][89a-fA-F]")
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")
_UTF8_BOM = b"\xef\xbb\xbf"

# int() refuses longer literals (sys.int_info.default_max_str_digits)
_MAX_INT_DIGITS = 4000


def _parse_int(literal: str):
    if len(literal) > _MAX_INT_DIGITS:
        return JsonNumber(literal)
    return int(literal)


def _reject_constant(name: str):
    raise ValueError(f"invalid literal {name}")


def _replace_surrogates(value):
    # the scanner pairs valid surrogate escapes, so any left over are unpaired
    if isinstance(value, JsonNumber):
        return value
    if isinstance(value, str):
        return _LONE_SURROGATE.sub("\ufffd", value)
    if isinstance(value, dict):
        return {_replace_surrogates(k): _replace_surrogates(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_replace_surrogates(item) for item in value]
    return value


def _read_lines(reader, buffer_size: int) -> Iterator[bytes]:
    """Split a stream offering only ``read(size)`` into lines."""
    pending = bytearray()
    while True:
        chunk = reader.read(buffer_size)
        if not chunk:
            break
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        search_from = len(pending)
        pending += chunk
        start = 0
        while True:
            newline = pending.find(b"\n", max(search_from, start))
            if newline < 0:
                break
            yield bytes(pending[start:newline + 1])
            start = newline + 1
        del pending[:start]
    if pending:
        yield bytes(pending)


class Record(Mapping):
    """
    One decoded JSON object.

    Read-only mapping from field name to decoded value, in the key order
    of the source object. ``line`` is the 1-based input line it came from.
    """

    __slots__ = ("_fields", "line")

    def __init__(self, fields: Dict[str, Any], line: int = 0):
        self._fields = fields
        self.line = line

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self):
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Record(line={self.line}, fields={self._fields!r})"


class JsonStreamDecoder:
    """
    Iterates over the JSON objects of a newline-delimited byte stream.

    Blank lines are skipped and several values may share one line. Each
    value must fit on a single line. Unpaired UTF-16 surrogate escapes in
    strings and field names decode as U+FFFD.
    """

    def __init__(self, stream, buffer_size: int = 64 * 1024):
        """
        Initialize decoder.

        Args:
            stream: Readable binary stream, iterable by line or offering
                ``read(size)`` (text streams are read through their
                underlying buffer when they expose one)
            buffer_size: Read buffer size in bytes for unbuffered streams
        """
        if isinstance(stream, io.TextIOBase) and hasattr(stream, "buffer"):
            stream = stream.buffer
        if isinstance(stream, io.RawIOBase):
            stream = io.BufferedReader(stream, buffer_size)
        elif not hasattr(stream, "__iter__") and hasattr(stream, "read"):
            stream = _read_lines(stream, buffer_size)
        self._stream = stream
        self._decoder = json.JSONDecoder(
            parse_float=JsonNumber,
            parse_int=_parse_int,
            parse_constant=_reject_constant,
        )
        self.lines_read = 0
        self.records_decoded = 0

    def __iter__(self) -> Iterator[Record]:
        offset = 0
        for raw in self._stream:
            self.lines_read += 1
            line_number = self.lines_read
            if line_number == 1 and isinstance(raw, bytes) and raw.startswith(_UTF8_BOM):
                raw = raw[len(_UTF8_BOM):]
                offset += len(_UTF8_BOM)
            text = self._text(raw, line_number, offset)

            pos = _WHITESPACE.match(text, 0).end()
            while pos < len(text):
                record, end = self._decode_value(text, pos, line_number, offset)
                yield record
                pos = _WHITESPACE.match(text, end).end()

            offset += len(raw)

        logger.debug(
            f"Decoded {self.records_decoded} records from {self.lines_read} lines")

    def _text(self, raw, line_number: int, offset: int) -> str:
        if not isinstance(raw, bytes):
            return raw
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(
                "invalid UTF-8 sequence", line_number, e.start + 1, offset + e.start
            ) from e

    def _decode_value(self, text: str, pos: int, line_number: int, offset: int):
        try:
            value, end = self._decoder.raw_decode(text, pos)
            if _SURROGATE_ESCAPE.search(text, pos, end) or _LONE_SURROGATE.search(text, pos, end):
                value = _replace_surrogates(value)
        except json.JSONDecodeError as e:
            raise self._error(e.msg, text, e.pos, line_number, offset) from e
        except ValueError as e:
            raise self._error(str(e), text, pos, line_number, offset) from e
        except RecursionError as e:
            raise self._error("value nested too deeply", text, pos, line_number, offset) from e

        if not isinstance(value, dict):
            raise self._error(
                f"expected a JSON object, got {type(value).__name__}",
                text, pos, line_number, offset,
            )
        self.records_decoded += 1
        return Record(value, line_number), end

    @staticmethod
    def _error(message: str, text: str, pos: int, line_number: int, offset: int) -> DecodeError:
        byte_pos = len(text[:pos].encode("utf-8"))
        return DecodeError(message, line_number, pos + 1, offset + byte_pos)


def decode_records(stream, buffer_size: Optional[int] = None) -> Iterator[Record]:
    """
    Yield the Records of a newline-delimited JSON stream.

    Args:
        stream: Readable binary stream
        buffer_size: Read buffer size in bytes (default 64 KiB)

    Raises:
        DecodeError: On malformed input, at the offending position
    """
    return iter(JsonStreamDecoder(stream, buffer_size or 64 * 1024))
