"""Line framing for the execution stream.

The transport chunks bytes however it likes; a chunk may end mid-line or
even mid-character. The decoder only guarantees that every frame it emits
is exactly one complete line. It does not parse JSON.
"""

import codecs


class StreamFrameDecoder:
    """Incremental newline-delimited frame decoder."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> list[str]:
        """Append a chunk and return every frame it completed."""
        if isinstance(chunk, bytes):
            self._buffer += self._decoder.decode(chunk)
        else:
            self._buffer += chunk

        frames: list[str] = []
        while True:
            newline = self._buffer.find("\n")
            if newline == -1:
                break
            line = self._buffer[:newline].strip()
            self._buffer = self._buffer[newline + 1:]
            if line:
                frames.append(line)
        return frames

    def flush(self) -> str | None:
        """Return the buffered tail as a final frame, if there is one.

        The last frame of a stream does not need a trailing newline.
        """
        self._buffer += self._decoder.decode(b"", final=True)
        tail = self._buffer.strip()
        self._buffer = ""
        return tail or None

    @property
    def pending(self) -> str:
        """Text buffered but not yet framed."""
        return self._buffer
