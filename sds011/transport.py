"""
Serial transport layer.

The driver reads and writes through a byte channel. SerialTransport is the
pyserial implementation; tests substitute an in-memory channel.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Optional

import serial

from .constants import DEFAULT_BAUDRATE, DEFAULT_TIMEOUT
from .exceptions import IoFailureError, ReadTimeout

logger = logging.getLogger(__name__)

# Read timeouts are rounded up to this step so the port is not reconfigured
# for every byte of a shrinking deadline
TIMEOUT_STEP = 0.1


class ByteChannel(ABC):
    """Ordered byte read/write over a single channel."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        Write bytes to the channel.

        Raises:
            IoFailureError: If the write fails
        """
        ...

    @abstractmethod
    def read_byte(self, timeout: Optional[float] = None) -> int:
        """
        Read a single byte.

        Args:
            timeout: Seconds to wait (None blocks until a byte arrives)

        Returns:
            Byte value 0-255

        Raises:
            ReadTimeout: If no byte arrived within timeout
            IoFailureError: If the read fails
        """
        ...

    def flush(self) -> None:
        """Discard pending input and output. Channels without buffers do nothing."""
        pass


def _port_timeout(timeout: Optional[float]) -> Optional[float]:
    if timeout is None or timeout <= 0:
        return timeout
    return math.ceil(round(timeout / TIMEOUT_STEP, 6)) * TIMEOUT_STEP


class SerialTransport(ByteChannel):
    """Serial port channel for the SDS011 (8N1)."""

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = DEFAULT_TIMEOUT
    ):
        """
        Initialize serial transport.

        Args:
            port: Serial port name (e.g., '/dev/ttyUSB0' or 'COM3')
            baudrate: Baud rate (default: 9600)
            timeout: Default read timeout in seconds
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._serial: Optional[serial.Serial] = None

    def open(self) -> None:
        """Open serial port."""
        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.timeout
            )
            logger.info(f"Opened serial port {self.port} at {self.baudrate} bps")
        except serial.SerialException as e:
            raise IoFailureError(f"Failed to open {self.port}: {e}") from e

    def close(self) -> None:
        """Close serial port."""
        if self._serial:
            try:
                self._serial.close()
            except serial.SerialException as e:
                logger.warning(f"Error closing {self.port}: {e}")
            self._serial = None
            logger.info(f"Closed serial port {self.port}")

    def write(self, data: bytes) -> None:
        """
        Send data over serial port.

        Args:
            data: Bytes to send

        Raises:
            IoFailureError: If port is not open or the write fails
        """
        port = self._require_open()
        try:
            count = port.write(data)
            port.flush()
            logger.debug(f"TX ({count} bytes): {data.hex(' ')}")
        except serial.SerialException as e:
            raise IoFailureError(f"Send failed: {e}") from e

    def read_byte(self, timeout: Optional[float] = None) -> int:
        """Read one byte, waiting at most timeout seconds."""
        port = self._require_open()
        try:
            port_timeout = _port_timeout(timeout)
            if port.timeout != port_timeout:
                port.timeout = port_timeout
            data = port.read(1)
        except serial.SerialException as e:
            raise IoFailureError(f"Receive failed: {e}") from e

        if not data:
            raise ReadTimeout(f"No data within {timeout}s")
        return data[0]

    def flush(self) -> None:
        """Discard pending input and output."""
        if self._serial and self._serial.is_open:
            try:
                self._serial.reset_input_buffer()
                self._serial.reset_output_buffer()
            except serial.SerialException as e:
                raise IoFailureError(f"Flush failed: {e}") from e

    def _require_open(self) -> serial.Serial:
        if not self._serial or not self._serial.is_open:
            raise IoFailureError("Serial port not open")
        return self._serial

    @property
    def is_open(self) -> bool:
        """Check if port is open."""
        return self._serial is not None and self._serial.is_open

    def __enter__(self) -> 'SerialTransport':
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"SerialTransport({self.port}, {self.baudrate}, {status})"
