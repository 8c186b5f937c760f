"""
Frame encoding and decoding.

Reply Format (10 bytes): [HEAD][ID][DATA1..DATA6][CHECKSUM][TAIL]
- HEAD: 0xAA
- ID: 0xC0 (measurement data) or 0xC5 (command acknowledgement)
- DATA: Frame-specific payload
- CHECKSUM: Sum of DATA1..DATA6 modulo 256
- TAIL: 0xAB

Command Format (19 bytes): [HEAD][0xB4][DATA1..DATA15][CHECKSUM][TAIL]
- DATA1: Command byte
- DATA2..DATA13: Operation and parameters, zero padded
- DATA14..DATA15: Target device ID (0xFFFF for all sensors)
- CHECKSUM: Sum of DATA1..DATA15 modulo 256

Multi-byte PM values are little-endian. Device IDs are sent as ID1, ID2
and read as (ID1 << 8) | ID2.
"""

import struct
from dataclasses import dataclass
from typing import Optional, Union

from .checksum import checksum, verify
from .constants import (
    HEAD, TAIL, FRAME_LEN, PAYLOAD_LEN, COMMAND_DATA_LEN, BROADCAST_ID,
    PM_SCALE, FrameID, Command, Operation, ReportingMode, SleepState,
)
from .exceptions import BadSentinelError, ChecksumMismatchError, UnknownFrameTypeError


@dataclass(frozen=True)
class DataFrame:
    """Measurement frame (ID 0xC0)."""
    pm25: float
    pm10: float
    device_id: int

    def __repr__(self) -> str:
        return (f"DataFrame(pm25={self.pm25}, pm10={self.pm10}, "
                f"device_id=0x{self.device_id:04X})")


@dataclass(frozen=True)
class AckFrame:
    """Command acknowledgement frame (ID 0xC5)."""
    command: int
    data: bytes        # DATA2..DATA4, meaning depends on command
    device_id: int

    @property
    def operation(self) -> int:
        return self.data[0]

    @property
    def value(self) -> int:
        return self.data[1]

    def __repr__(self) -> str:
        return (f"AckFrame(command={Command.name_of(self.command)}, "
                f"data={self.data.hex(' ')}, device_id=0x{self.device_id:04X})")


Frame = Union[DataFrame, AckFrame]


def _device_id_bytes(device_id: int) -> bytes:
    return device_id.to_bytes(2, "big")


class FrameCodec:
    """Encodes command frames and decodes reply frames."""

    @staticmethod
    def encode_command(command: int, params: bytes = b"", device_id: int = BROADCAST_ID) -> bytes:
        """
        Build complete command frame with checksum.

        Args:
            command: Command byte
            params: Operation and parameter bytes following the command byte
            device_id: Target device ID

        Returns:
            Complete 19-byte frame ready for transmission
        """
        pad = COMMAND_DATA_LEN - 3 - len(params)
        if pad < 0:
            raise ValueError(f"Command parameters too long ({len(params)} bytes)")

        data = bytes([command]) + params + bytes(pad) + _device_id_bytes(device_id)
        return bytes([HEAD, FrameID.COMMAND]) + data + bytes([checksum(data), TAIL])

    @staticmethod
    def encode_reply(frame_id: int, payload: bytes) -> bytes:
        """
        Build a 10-byte reply frame as the sensor would send it.

        Args:
            frame_id: FrameID.DATA or FrameID.ACK
            payload: Exactly 6 payload bytes

        Returns:
            Complete reply frame bytes
        """
        if len(payload) != PAYLOAD_LEN:
            raise ValueError(f"Reply payload must be {PAYLOAD_LEN} bytes, got {len(payload)}")
        return bytes([HEAD, frame_id]) + payload + bytes([checksum(payload), TAIL])

    @staticmethod
    def encode_data(pm25: float, pm10: float, device_id: int) -> bytes:
        """Build a measurement reply frame."""
        payload = struct.pack(
            '<HH', int(round(pm25 * PM_SCALE)), int(round(pm10 * PM_SCALE))
        ) + _device_id_bytes(device_id)
        return FrameCodec.encode_reply(FrameID.DATA, payload)

    @staticmethod
    def ack_for_command(command_frame: bytes, device_id: Optional[int] = None,
                        value: Optional[int] = None) -> bytes:
        """
        Build the acknowledgement a sensor returns for a command frame.

        Args:
            command_frame: 19-byte command frame
            device_id: ID of the answering sensor (None uses the target ID,
                which must not be broadcast)
            value: Reported value (None echoes the command's parameter)

        Returns:
            10-byte ack frame
        """
        data = command_frame[2:2 + COMMAND_DATA_LEN]
        command = data[0]
        target = int.from_bytes(data[-2:], "big")

        if command in (Command.QUERY, Command.FIRMWARE):
            raise ValueError(f"{Command.name_of(command)} reply carries sensor data, not an echo")

        if command == Command.SET_DEVICE_ID:
            # Sensor answers with its new ID
            return FrameCodec.encode_reply(FrameID.ACK, bytes([command, 0, 0, 0]) + data[11:13])

        if device_id is None:
            if target == BROADCAST_ID:
                raise ValueError("device_id is required for broadcast commands")
            device_id = target

        reported = data[2] if value is None else value
        payload = bytes([command, data[1], reported, 0]) + _device_id_bytes(device_id)
        return FrameCodec.encode_reply(FrameID.ACK, payload)

    @staticmethod
    def decode(raw: bytes) -> Frame:
        """
        Validate and decode a 10-byte reply frame.

        Args:
            raw: Frame bytes

        Returns:
            DataFrame or AckFrame

        Raises:
            BadSentinelError: Wrong length or head/tail byte
            ChecksumMismatchError: Checksum byte does not match payload
            UnknownFrameTypeError: ID byte is neither data nor ack
        """
        if len(raw) != FRAME_LEN:
            raise BadSentinelError(f"Frame must be {FRAME_LEN} bytes, got {len(raw)}")
        if raw[0] != HEAD or raw[-1] != TAIL:
            raise BadSentinelError(
                f"Bad sentinels: head=0x{raw[0]:02X}, tail=0x{raw[-1]:02X}"
            )

        payload = bytes(raw[2:2 + PAYLOAD_LEN])
        if not verify(payload, raw[8]):
            raise ChecksumMismatchError(checksum(payload), raw[8])

        frame_id = raw[1]
        device_id = int.from_bytes(payload[4:6], "big")

        if frame_id == FrameID.DATA:
            pm25, pm10 = struct.unpack('<HH', payload[:4])
            return DataFrame(pm25 / PM_SCALE, pm10 / PM_SCALE, device_id)

        if frame_id == FrameID.ACK:
            return AckFrame(payload[0], payload[1:4], device_id)

        raise UnknownFrameTypeError(frame_id)


class FrameBuilder:
    """Builds specific command frames."""

    @staticmethod
    def build_reporting_mode(mode: Optional[ReportingMode] = None,
                             device_id: int = BROADCAST_ID) -> bytes:
        """Build REPORTING_MODE frame (query when mode is None)."""
        if mode is None:
            params = bytes([Operation.QUERY, 0])
        else:
            params = bytes([Operation.SET, mode])
        return FrameCodec.encode_command(Command.REPORTING_MODE, params, device_id)

    @staticmethod
    def build_query(device_id: int = BROADCAST_ID) -> bytes:
        """Build QUERY (read measurement) frame."""
        return FrameCodec.encode_command(Command.QUERY, b"", device_id)

    @staticmethod
    def build_set_device_id(new_id: int, device_id: int = BROADCAST_ID) -> bytes:
        """Build SET_DEVICE_ID frame. New ID occupies DATA12..DATA13."""
        params = bytes(10) + _device_id_bytes(new_id)
        return FrameCodec.encode_command(Command.SET_DEVICE_ID, params, device_id)

    @staticmethod
    def build_sleep(state: Optional[SleepState] = None,
                    device_id: int = BROADCAST_ID) -> bytes:
        """Build SLEEP frame (query when state is None)."""
        if state is None:
            params = bytes([Operation.QUERY, 0])
        else:
            params = bytes([Operation.SET, state])
        return FrameCodec.encode_command(Command.SLEEP, params, device_id)

    @staticmethod
    def build_firmware(device_id: int = BROADCAST_ID) -> bytes:
        """Build FIRMWARE version frame."""
        return FrameCodec.encode_command(Command.FIRMWARE, b"", device_id)

    @staticmethod
    def build_work_period(minutes: Optional[int] = None,
                          device_id: int = BROADCAST_ID) -> bytes:
        """Build WORK_PERIOD frame (query when minutes is None)."""
        if minutes is None:
            params = bytes([Operation.QUERY, 0])
        else:
            params = bytes([Operation.SET, minutes])
        return FrameCodec.encode_command(Command.WORK_PERIOD, params, device_id)
