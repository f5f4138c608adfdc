"""
Delimited-text codec used for both reading sources and framing output.
"""

from __future__ import annotations

import codecs
import csv
import io
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Sequence

READ_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class CsvCodec:
    """
    CSV reader/writer pair sharing one dialect.

    Defaults match RFC 4180: comma delimiter, double-quote quoting where
    needed and ``\\r\\n`` record separators. The codec holds no per-file state
    and is safe to share across concurrent transfers.
    """

    delimiter: str = ","
    quotechar: str = '"'
    encoding: str = "utf-8"
    lineterminator: str = "\r\n"

    def parse_rows(self, stream: BinaryIO) -> Iterator[list[str]]:
        """
        Lazily parse rows from a binary stream.

        Raises (while iterating):
            UnicodeDecodeError: If the bytes are not valid in ``encoding``
            csv.Error: If the text is not valid delimited data
        """
        reader = csv.reader(
            _iter_text_lines(stream, self.encoding),
            delimiter=self.delimiter,
            quotechar=self.quotechar,
            strict=True,
        )
        for row in reader:
            # blank lines carry no record
            if row:
                yield row

    def serialize_row(self, row: Sequence[str]) -> bytes:
        """Frame one row as encoded bytes, terminator included."""
        buf = io.StringIO()
        writer = csv.writer(
            buf,
            delimiter=self.delimiter,
            quotechar=self.quotechar,
            lineterminator=self.lineterminator,
            quoting=csv.QUOTE_MINIMAL,
        )
        writer.writerow(row)
        return buf.getvalue().encode(self.encoding)

    @property
    def content_type(self) -> str:
        return "text/csv" if self.delimiter == "," else "text/plain"


def _iter_text_lines(stream: BinaryIO, encoding: str, chunk_size: int = READ_CHUNK_SIZE) -> Iterator[str]:
    """Decode a byte stream incrementally and yield lines, keeping their ``\\n``."""
    decoder = codecs.getincrementaldecoder(encoding)(errors="strict")
    pending = ""
    while True:
        chunk = stream.read(chunk_size)
        final = not chunk
        pending += decoder.decode(chunk or b"", final=final)
        start = 0
        while True:
            end = pending.find("\n", start)
            if end == -1:
                break
            yield pending[start : end + 1]
            start = end + 1
        pending = pending[start:]
        if final:
            break
    if pending:
        yield pending
