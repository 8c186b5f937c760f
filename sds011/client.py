"""
Command session.

Sends configuration commands to the sensor and correlates the
acknowledgement frames that come back on the same channel. One session owns
its channel: every write and every read goes through it.
"""

import time
import logging
from typing import Callable, Iterator, Optional

from .config import SensorConfig
from .constants import (
    BROADCAST_ID, MIN_WORK_PERIOD, MAX_WORK_PERIOD, DEFAULT_TIMEOUT,
    DEFAULT_RETRIES, Command, Operation, ReportingMode, SleepState,
)
from .exceptions import (
    InvalidParameterError, IoFailureError, NoResponseError, ReadTimeout,
    UnexpectedResponseError,
)
from .frame import AckFrame, DataFrame, Frame, FrameBuilder
from .measurements import FirmwareVersion, Measurement
from .reader import ReaderStateMachine
from .transport import ByteChannel

logger = logging.getLogger(__name__)


def check_work_period(minutes: int) -> None:
    """Raise InvalidParameterError unless minutes is a valid work period."""
    if not isinstance(minutes, int) or not MIN_WORK_PERIOD <= minutes <= MAX_WORK_PERIOD:
        raise InvalidParameterError(
            f"Work period must be {MIN_WORK_PERIOD}-{MAX_WORK_PERIOD} minutes, got {minutes!r}"
        )


class CommandSession:
    """Request/acknowledge session with one SDS011 sensor."""

    def __init__(
        self,
        channel: ByteChannel,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        device_id: int = BROADCAST_ID
    ):
        """
        Initialize session.

        Args:
            channel: Byte channel shared by commands and frame reads
            timeout: Seconds to wait for a response per attempt
            retries: Number of attempts before NoResponseError
            device_id: Target sensor ID (0xFFFF accepts any responder)
        """
        if retries < 1:
            raise InvalidParameterError(f"retries must be at least 1, got {retries}")
        self.channel = channel
        self.timeout = timeout
        self.retries = retries
        self.device_id = device_id
        self.reader = ReaderStateMachine(channel)

    @classmethod
    def from_config(cls, channel: ByteChannel, config: SensorConfig) -> 'CommandSession':
        return cls(channel, config.timeout, config.retries, config.device_id)

    def _send_and_receive(
        self,
        frame_data: bytes,
        matches: Callable[[Frame], bool],
        timeout: Optional[float] = None
    ) -> Frame:
        """
        Send frame and wait for the correlating response.

        Frames that do not match are ignored until the attempt's window ends.

        Args:
            frame_data: Command frame bytes
            matches: Predicate selecting the response
            timeout: Response timeout per attempt (None uses default)

        Returns:
            Correlated frame

        Raises:
            NoResponseError: If every attempt timed out
            IoFailureError: If the channel fails (not retried)
        """
        timeout = self.timeout if timeout is None else timeout

        # Drop anything left over from an earlier command
        self.reader.reset()
        self._flush()

        for attempt in range(self.retries):
            logger.debug(f"Sending frame (attempt {attempt + 1}): {frame_data.hex()}")
            self._write(frame_data)

            deadline = time.monotonic() + timeout
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                try:
                    frame = self._read_frame(remaining)
                except ReadTimeout:
                    break

                if matches(frame):
                    return frame
                logger.debug(f"Ignoring uncorrelated frame: {frame!r}")

            logger.warning(f"Timeout on attempt {attempt + 1}")

        raise NoResponseError(timeout, self.retries)

    def _flush(self) -> None:
        try:
            self.channel.flush()
        except OSError as e:
            raise IoFailureError(f"Flush failed: {e}") from e

    def _write(self, data: bytes) -> None:
        try:
            self.channel.write(data)
        except OSError as e:
            raise IoFailureError(f"Write failed: {e}") from e

    def _read_frame(self, timeout: Optional[float]) -> Frame:
        try:
            return self.reader.read_frame(timeout)
        except OSError as e:
            raise IoFailureError(f"Read failed: {e}") from e

    def _from_target(self, device_id: int) -> bool:
        return self.device_id == BROADCAST_ID or device_id == self.device_id

    def _ack(self, command: int, operation: Optional[int] = None,
             device_id: Optional[int] = None) -> Callable[[Frame], bool]:
        """
        Predicate for the ack of command.

        Args:
            command: Command byte the ack must echo
            operation: Operation byte the ack must echo (None for commands
                whose ack carries no operation, e.g. FIRMWARE)
            device_id: Required responder ID (None accepts the session target)
        """
        def matches(frame: Frame) -> bool:
            if not isinstance(frame, AckFrame) or frame.command != command:
                return False
            if operation is not None and frame.operation != operation:
                return False
            if device_id is not None:
                return frame.device_id == device_id
            return self._from_target(frame.device_id)
        return matches

    def _command(self, frame_data: bytes, command: int, operation: Optional[int] = None,
                 device_id: Optional[int] = None) -> AckFrame:
        return self._send_and_receive(frame_data, self._ack(command, operation, device_id))

    # === Work period ===

    def set_work_period(self, minutes: int) -> None:
        """
        Set the reporting interval.

        Args:
            minutes: 0 (continuous) to 30

        Raises:
            InvalidParameterError: If minutes is out of range (nothing is sent)
            NoResponseError: If the sensor does not acknowledge
        """
        check_work_period(minutes)

        ack = self._command(FrameBuilder.build_work_period(minutes, self.device_id),
                            Command.WORK_PERIOD, Operation.SET)
        if ack.value != minutes:
            logger.warning(f"Sensor reports work period {ack.value}, requested {minutes}")
        logger.info(f"Set work period: {minutes} min (device 0x{ack.device_id:04X})")

    def get_work_period(self) -> int:
        """Read the reporting interval in minutes."""
        ack = self._command(FrameBuilder.build_work_period(None, self.device_id),
                            Command.WORK_PERIOD, Operation.QUERY)
        return ack.value

    # === Reporting mode ===

    def query_mode(self) -> ReportingMode:
        """Read the current reporting mode."""
        ack = self._command(FrameBuilder.build_reporting_mode(None, self.device_id),
                            Command.REPORTING_MODE, Operation.QUERY)
        try:
            mode = ReportingMode(ack.value)
        except ValueError as e:
            raise UnexpectedResponseError(f"Unknown reporting mode in ack: {ack!r}") from e
        logger.info(f"Reporting mode: {mode.name}")
        return mode

    def set_mode(self, mode: ReportingMode) -> None:
        """Switch between active streaming and query-on-request."""
        try:
            mode = ReportingMode(mode)
        except ValueError as e:
            raise InvalidParameterError(f"Invalid reporting mode: {mode!r}") from e

        self._command(FrameBuilder.build_reporting_mode(mode, self.device_id),
                      Command.REPORTING_MODE, Operation.SET)
        logger.info(f"Set reporting mode: {mode.name}")

    # === Device ID ===

    def set_device_id(self, new_id: int) -> None:
        """
        Assign a new device ID.

        The acknowledgement carries the new ID, so only an ack from new_id
        completes the command.

        Args:
            new_id: 0x0000-0xFFFE (0xFFFF is reserved for broadcast)
        """
        if not isinstance(new_id, int) or not 0 <= new_id < BROADCAST_ID:
            raise InvalidParameterError(f"Device ID must be 0x0000-0xFFFE, got {new_id!r}")

        self._command(FrameBuilder.build_set_device_id(new_id, self.device_id),
                      Command.SET_DEVICE_ID, device_id=new_id)
        logger.info(f"Device 0x{self.device_id:04X} now has ID 0x{new_id:04X}")
        if self.device_id != BROADCAST_ID:
            self.device_id = new_id

    # === Sleep ===

    def sleep(self) -> None:
        """Stop the fan and laser."""
        self._command(FrameBuilder.build_sleep(SleepState.SLEEP, self.device_id),
                      Command.SLEEP, Operation.SET)
        logger.info("Sensor sleeping")

    def wake(self) -> None:
        """Resume measuring."""
        self._command(FrameBuilder.build_sleep(SleepState.WORK, self.device_id),
                      Command.SLEEP, Operation.SET)
        logger.info("Sensor working")

    def get_sleep_state(self) -> SleepState:
        ack = self._command(FrameBuilder.build_sleep(None, self.device_id),
                            Command.SLEEP, Operation.QUERY)
        try:
            return SleepState(ack.value)
        except ValueError as e:
            raise UnexpectedResponseError(f"Unknown sleep state in ack: {ack!r}") from e

    # === Identification ===

    def firmware_version(self) -> FirmwareVersion:
        """Read the firmware build date."""
        ack = self._command(FrameBuilder.build_firmware(self.device_id), Command.FIRMWARE)
        version = FirmwareVersion(ack.data[0], ack.data[1], ack.data[2])
        logger.info(f"Firmware version: {version}")
        return version

    # === Measurements ===

    def query(self) -> DataFrame:
        """
        Request one measurement (query reporting mode).

        Returns:
            DataFrame from the target sensor
        """
        def matches(frame: Frame) -> bool:
            return isinstance(frame, DataFrame) and self._from_target(frame.device_id)

        return self._send_and_receive(FrameBuilder.build_query(self.device_id), matches)

    def measurements(self, timeout: Optional[float] = None) -> Iterator[Measurement]:
        """
        Yield measurements streamed by the sensor (active reporting mode).

        Args:
            timeout: Per-frame deadline (None waits indefinitely)

        Raises:
            ReadTimeout: If timeout is set and no frame arrives in time
        """
        for frame in self.reader.frames(timeout):
            if isinstance(frame, DataFrame) and self._from_target(frame.device_id):
                yield Measurement.from_frame(frame)
            else:
                logger.debug(f"Skipping frame: {frame!r}")
