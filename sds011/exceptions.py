"""
Custom exceptions for the SDS011 driver.
"""

from .constants import FrameID


class SDS011Error(Exception):
    """Base exception for SDS011 driver errors."""
    pass


class FrameError(SDS011Error):
    """Reply frame failed validation."""
    pass


class BadSentinelError(FrameError):
    """Head/tail byte or frame length is wrong."""
    pass


class ChecksumMismatchError(FrameError):
    """Checksum verification failed."""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Checksum mismatch: expected 0x{expected:02X}, received 0x{received:02X}"
        )


class UnknownFrameTypeError(FrameError):
    """Frame is well formed but its ID byte is neither data nor ack."""

    def __init__(self, frame_id: int):
        self.frame_id = frame_id
        super().__init__(f"Unknown frame type: {FrameID.name_of(frame_id)}")


class ReadTimeout(SDS011Error):
    """No byte arrived on the channel within the read timeout."""
    pass


class SessionError(SDS011Error):
    """Command session failure surfaced to the caller."""
    pass


class NoResponseError(SessionError):
    """Sensor did not acknowledge a command."""

    def __init__(self, timeout: float, retries: int = 0):
        self.timeout = timeout
        self.retries = retries
        msg = f"No response within {timeout}s"
        if retries > 0:
            msg += f" after {retries} retries"
        super().__init__(msg)


class IoFailureError(SessionError):
    """Serial channel read or write failed."""
    pass


class InvalidParameterError(SessionError, ValueError):
    """Command parameter out of range, rejected before any I/O."""
    pass


class UnexpectedResponseError(SessionError):
    """Correlated response carries a value the protocol does not define."""
    pass
