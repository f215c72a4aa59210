"""Outbound chunking and inbound newline reassembly."""

from __future__ import annotations

import codecs
import logging
import time
from collections.abc import Callable

from bleuart.core.errors import SendError, TransportError

DEFAULT_CHUNK_SIZE = 19
DEFAULT_PACING_S = 0.002
DELIMITER = "\n"
LOGGER = logging.getLogger(__name__)


class Framer:
    """Splits outbound payloads into paced writes and joins inbound fragments into lines.

    The reassembly buffer is owned by the consumer thread; nothing here locks.
    """

    def __init__(
        self,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        pacing_s: float = DEFAULT_PACING_S,
        encoding: str = "utf-8",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.chunk_size = chunk_size
        self.pacing_s = pacing_s
        self.encoding = encoding
        self._sleep = sleep
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def chunks(self, payload: bytes) -> list[bytes]:
        return [payload[i : i + self.chunk_size] for i in range(0, len(payload), self.chunk_size)]

    def write_chunks(self, payload: bytes, write: Callable[[bytes], None]) -> int:
        """Write ``payload`` chunk by chunk, pausing between writes.

        Stops at the first failing write and raises ``SendError``; chunks already
        written stay written.
        """
        chunks = self.chunks(payload)
        for index, chunk in enumerate(chunks):
            if index and self.pacing_s > 0:
                self._sleep(self.pacing_s)
            try:
                write(chunk)
            except TransportError as exc:
                raise SendError(
                    f"Chunk {index + 1}/{len(chunks)} write failed: {exc}",
                    chunks_sent=index,
                ) from exc
            LOGGER.debug("Wrote chunk %d/%d (%d bytes)", index + 1, len(chunks), len(chunk))
        return len(chunks)

    def feed(self, fragment: bytes) -> list[str]:
        """Append a raw notification payload and return every completed message."""
        self._buffer += self._decoder.decode(fragment).replace("\r", "")
        messages: list[str] = []
        while True:
            index = self._buffer.find(DELIMITER)
            if index < 0:
                break
            messages.append(self._buffer[:index])
            self._buffer = self._buffer[index + 1 :]
        return messages

    def reset(self) -> None:
        self._buffer = ""
        self._decoder.reset()
