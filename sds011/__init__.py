"""
SDS011 - Python driver for the Nova SDS011 particulate matter sensor.

This package provides:
- Protocol constants
- Additive checksum calculation
- Frame encoding and decoding
- Frame synchronization over a byte stream
- Serial transport layer
- Command session with timeout and retry
- Measurement data structures
"""

from .constants import (
    HEAD, TAIL, FRAME_LEN, BROADCAST_ID,
    FrameID, Command, Operation, ReportingMode, SleepState
)
from .checksum import checksum
from .config import SensorConfig
from .exceptions import (
    SDS011Error, FrameError, BadSentinelError, ChecksumMismatchError,
    UnknownFrameTypeError, ReadTimeout, SessionError, NoResponseError,
    IoFailureError, InvalidParameterError, UnexpectedResponseError
)
from .frame import AckFrame, DataFrame, Frame, FrameBuilder, FrameCodec
from .reader import ReaderState, ReaderStateMachine
from .transport import ByteChannel, SerialTransport
from .client import CommandSession
from .measurements import FirmwareVersion, Measurement

__version__ = "0.2.0"
__all__ = [
    # Constants
    "HEAD", "TAIL", "FRAME_LEN", "BROADCAST_ID",
    "FrameID", "Command", "Operation", "ReportingMode", "SleepState",
    # Checksum
    "checksum",
    # Config
    "SensorConfig",
    # Exceptions
    "SDS011Error", "FrameError", "BadSentinelError", "ChecksumMismatchError",
    "UnknownFrameTypeError", "ReadTimeout", "SessionError", "NoResponseError",
    "IoFailureError", "InvalidParameterError", "UnexpectedResponseError",
    # Frame
    "AckFrame", "DataFrame", "Frame", "FrameBuilder", "FrameCodec",
    # Reader
    "ReaderState", "ReaderStateMachine",
    # Transport
    "ByteChannel", "SerialTransport",
    # Client
    "CommandSession",
    # Measurements
    "FirmwareVersion", "Measurement",
]
