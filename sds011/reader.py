"""
Frame synchronization over a byte stream.

The reader scans for the head byte, collects one frame worth of bytes and
hands it to the codec. Malformed frames are dropped and the reader
resynchronizes on the next head byte inside the rejected bytes, so a
spurious 0xAA in the stream never costs a following valid frame.
"""

import logging
import time
from enum import Enum
from typing import Iterator, List, Optional

from .constants import HEAD, FRAME_LEN
from .exceptions import FrameError, ReadTimeout, UnknownFrameTypeError
from .frame import Frame, FrameCodec
from .transport import ByteChannel

logger = logging.getLogger(__name__)


class ReaderState(Enum):
    """Synchronization state."""
    SEEKING = 0
    ACCUMULATING = 1


class ReaderStateMachine:
    """Turns a byte stream into validated reply frames."""

    def __init__(self, channel: Optional[ByteChannel] = None):
        """
        Initialize reader.

        Args:
            channel: Byte source for read_frame()/frames(). Not needed when
                bytes are pushed with feed().
        """
        self.channel = channel
        self._buffer = bytearray()
        self._state = ReaderState.SEEKING

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def buffered(self) -> int:
        """Number of bytes held for the frame in progress."""
        return len(self._buffer)

    def reset(self) -> None:
        """Drop any partial frame."""
        self._buffer.clear()
        self._state = ReaderState.SEEKING

    def feed_byte(self, byte: int) -> Optional[Frame]:
        """
        Advance the state machine by one byte.

        Returns:
            Decoded frame when this byte completes a valid one, else None
        """
        if self._state == ReaderState.SEEKING:
            if byte == HEAD:
                self._buffer.append(byte)
                self._state = ReaderState.ACCUMULATING
            return None

        self._buffer.append(byte)
        if len(self._buffer) < FRAME_LEN:
            return None

        raw = bytes(self._buffer)
        try:
            frame = FrameCodec.decode(raw)
        except UnknownFrameTypeError as e:
            logger.warning(f"Dropping frame: {e}")
            self.reset()
            return None
        except FrameError as e:
            logger.warning(f"Bad frame ({e}), resynchronizing: {raw.hex(' ')}")
            self._resync(raw[1:])
            return None

        self.reset()
        logger.debug(f"RX frame: {raw.hex(' ')}")
        return frame

    def feed(self, data: bytes) -> List[Frame]:
        """Push a chunk of bytes and return all frames it completes."""
        frames = []
        for byte in data:
            frame = self.feed_byte(byte)
            if frame is not None:
                frames.append(frame)
        return frames

    def _resync(self, pending: bytes) -> None:
        # pending is shorter than a frame, so it can never complete one here
        start = pending.find(HEAD)
        if start < 0:
            self.reset()
            return
        self._buffer = bytearray(pending[start:])
        self._state = ReaderState.ACCUMULATING

    def read_frame(self, timeout: Optional[float] = None) -> Frame:
        """
        Pull bytes from the channel until a frame is complete.

        A partial frame survives a timeout and is continued by the next call.

        Args:
            timeout: Overall deadline in seconds (None blocks indefinitely)

        Returns:
            Next valid frame

        Raises:
            ReadTimeout: If no complete frame arrived before the deadline
            IoFailureError: If the channel fails
        """
        if self.channel is None:
            raise RuntimeError("Reader has no channel")

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ReadTimeout(f"No frame within {timeout}s")

            frame = self.feed_byte(self.channel.read_byte(remaining))
            if frame is not None:
                return frame

    def frames(self, timeout: Optional[float] = None) -> Iterator[Frame]:
        """
        Lazily yield frames as they arrive.

        Args:
            timeout: Per-frame deadline passed to read_frame(); a ReadTimeout
                ends iteration by propagating to the consumer

        Yields:
            Validated frames in stream order
        """
        while True:
            yield self.read_frame(timeout)
