"""Tests for newline framing of the execution stream."""

from teamflow.streaming.decoder import StreamFrameDecoder


class TestFraming:
    """Frames are complete lines regardless of chunk boundaries."""

    def test_single_chunk_multiple_frames(self):
        """One chunk may carry several frames."""
        decoder = StreamFrameDecoder()
        assert decoder.feed(b'{"a": 1}\n{"b": 2}\n') == ['{"a": 1}', '{"b": 2}']
        assert decoder.pending == ""

    def test_frame_split_across_chunks(self):
        """A frame split over two chunks is emitted once complete."""
        decoder = StreamFrameDecoder()
        assert decoder.feed(b'{"status": "comp') == []
        assert decoder.feed(b'leted"}\n') == ['{"status": "completed"}']

    def test_every_split_point_yields_same_frames(self):
        """The frames do not depend on where the body is split."""
        payload = '{"source": "a", "content": "x"}\n{"status": "heartbeat"}\n'.encode()
        for split in range(len(payload) + 1):
            decoder = StreamFrameDecoder()
            frames = decoder.feed(payload[:split]) + decoder.feed(payload[split:])
            assert frames == ['{"source": "a", "content": "x"}', '{"status": "heartbeat"}']

    def test_multibyte_character_split(self):
        """A UTF-8 character split between chunks decodes intact."""
        text = '{"content": "héllo 你好"}\n'.encode("utf-8")
        split = text.index("你".encode("utf-8")) + 1
        decoder = StreamFrameDecoder()
        assert decoder.feed(text[:split]) == []
        assert decoder.feed(text[split:]) == ['{"content": "héllo 你好"}']

    def test_blank_lines_discarded_and_whitespace_trimmed(self):
        """Blank lines are dropped and frames trimmed."""
        decoder = StreamFrameDecoder()
        assert decoder.feed(b'\n  \n  {"a": 1}  \r\n\n') == ['{"a": 1}']

    def test_str_chunks_accepted(self):
        """Text chunks are framed like bytes."""
        decoder = StreamFrameDecoder()
        assert decoder.feed('{"a": 1}\n{"b"') == ['{"a": 1}']
        assert decoder.pending == '{"b"'


class TestFlush:
    """The trailing remainder is the final frame."""

    def test_flush_returns_unterminated_tail(self):
        """Flush returns the last frame without a newline."""
        decoder = StreamFrameDecoder()
        decoder.feed(b'{"a": 1}\n{"status": "completed"}')
        assert decoder.flush() == '{"status": "completed"}'
        assert decoder.pending == ""

    def test_flush_empty(self):
        """Flush with nothing pending returns None."""
        decoder = StreamFrameDecoder()
        decoder.feed(b'{"a": 1}\n')
        assert decoder.flush() is None

    def test_flush_whitespace_only(self):
        """Flush of only whitespace returns None."""
        decoder = StreamFrameDecoder()
        decoder.feed(b"   ")
        assert decoder.flush() is None
