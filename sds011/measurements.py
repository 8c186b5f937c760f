"""
Measurement data structures.
"""

import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .frame import DataFrame


@dataclass(frozen=True)
class Measurement:
    """A single timestamped PM reading."""
    timestamp: int     # UNIX seconds
    pm25: float        # ug/m3
    pm10: float        # ug/m3
    device_id: int

    @classmethod
    def from_frame(cls, frame: DataFrame, timestamp: Optional[int] = None) -> 'Measurement':
        """Stamp a data frame with the receive time."""
        if timestamp is None:
            timestamp = int(time.time())
        return cls(timestamp, frame.pm25, frame.pm10, frame.device_id)

    def to_csv(self) -> str:
        return f"{self.timestamp}, {self.pm25}, {self.pm10}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return f"[{self.timestamp}] PM10={self.pm10} PM25={self.pm25}"


@dataclass(frozen=True)
class FirmwareVersion:
    """Firmware build date reported by the sensor."""
    year: int          # Two-digit year
    month: int
    day: int

    def __str__(self) -> str:
        return f"{self.year:02d}-{self.month:02d}-{self.day:02d}"
