"""
Protocol constants for the Nova SDS011 serial protocol.

Reply frames (sensor -> host) are 10 bytes:
    [HEAD][ID][DATA1..DATA6][CHECKSUM][TAIL]

Command frames (host -> sensor) are 19 bytes:
    [HEAD][0xB4][DATA1..DATA15][CHECKSUM][TAIL]
"""

from enum import IntEnum

# Frame delimiters
HEAD = 0xAA
TAIL = 0xAB

# Frame sizes
FRAME_LEN = 10
PAYLOAD_LEN = 6
COMMAND_FRAME_LEN = 19
COMMAND_DATA_LEN = 15

# Target every sensor on the bus
BROADCAST_ID = 0xFFFF

# Work period limits in minutes (0 = continuous)
MIN_WORK_PERIOD = 0
MAX_WORK_PERIOD = 30

# Serial line settings
DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUDRATE = 9600

# Session defaults
DEFAULT_TIMEOUT = 1.0
DEFAULT_RETRIES = 3
DEFAULT_WORK_PERIOD = 5

# PM readings are transmitted as tenths of ug/m3
PM_SCALE = 10.0


class FrameID(IntEnum):
    """Second byte of a frame."""
    COMMAND = 0xB4
    DATA = 0xC0
    ACK = 0xC5

    @classmethod
    def name_of(cls, frame_id: int) -> str:
        """Get frame type name from ID byte."""
        try:
            return cls(frame_id).name
        except ValueError:
            return f"Unknown(0x{frame_id:02X})"


class Command(IntEnum):
    """Command bytes (first data byte of a command frame)."""
    REPORTING_MODE = 0x02
    QUERY = 0x04
    SET_DEVICE_ID = 0x05
    SLEEP = 0x06
    FIRMWARE = 0x07
    WORK_PERIOD = 0x08

    @classmethod
    def name_of(cls, command: int) -> str:
        """Get command name from code."""
        try:
            return cls(command).name
        except ValueError:
            return f"Unknown(0x{command:02X})"


class Operation(IntEnum):
    """Read or write flag carried by most commands."""
    QUERY = 0x00
    SET = 0x01


class ReportingMode(IntEnum):
    """Reporting mode of the sensor."""
    ACTIVE = 0x00   # Sensor streams data frames every work period
    QUERY = 0x01    # Sensor answers query commands only


class SleepState(IntEnum):
    """Sleep/work state of the sensor."""
    SLEEP = 0x00
    WORK = 0x01
