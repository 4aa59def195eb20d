"""
Line Framing
============

Splits the raw byte stream from a serial link into newline-terminated
text lines. Any unterminated suffix is kept until a later read completes it.
"""

import logging
from typing import Iterator

logger = logging.getLogger(__name__)


class LineFramer:
    """
    Incremental newline framer.

    Bytes are buffered as bytes and only decoded once a full line is
    available, so multi-byte UTF-8 characters split across reads survive.
    """

    DELIMITER = b'\n'

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding
        self._buffer = bytearray()
        self._lines_emitted = 0

    def feed(self, data: bytes) -> Iterator[str]:
        """
        Append received bytes and return the complete lines.

        The bytes are buffered immediately; the returned iterator is lazy
        and extracts lines from the shared buffer as it is consumed.

        Args:
            data: Raw bytes (or text) read from the link

        Returns:
            Iterator over complete lines, trailing CR removed
        """
        if isinstance(data, str):
            data = data.encode(self.encoding)
        self._buffer.extend(data)
        return self._drain()

    def _drain(self) -> Iterator[str]:
        while True:
            end = self._buffer.find(self.DELIMITER)
            if end < 0:
                return
            raw = bytes(self._buffer[:end])
            del self._buffer[:end + 1]
            self._lines_emitted += 1
            yield raw.decode(self.encoding, errors='replace').rstrip('\r')

    def reset(self):
        """Discard any partial line."""
        if self._buffer:
            logger.debug(f"Discarding {len(self._buffer)} unterminated bytes")
        self._buffer.clear()

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet terminated by a newline."""
        return bytes(self._buffer)

    @property
    def lines_emitted(self) -> int:
        return self._lines_emitted
