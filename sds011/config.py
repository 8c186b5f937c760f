"""
Driver configuration.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .constants import (
    DEFAULT_PORT, DEFAULT_BAUDRATE, DEFAULT_TIMEOUT, DEFAULT_RETRIES,
    DEFAULT_WORK_PERIOD, BROADCAST_ID,
)


@dataclass
class SensorConfig:
    """
    Connection and session settings.

    Attributes:
        port: Serial port path
        baudrate: Communication speed
        timeout: Response timeout per attempt in seconds
        retries: Attempts per command before giving up
        work_period: Work period in minutes applied on startup
        device_id: Target sensor ID (0xFFFF addresses every sensor)
    """
    port: str = DEFAULT_PORT
    baudrate: int = DEFAULT_BAUDRATE
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    work_period: int = DEFAULT_WORK_PERIOD
    device_id: int = BROADCAST_ID

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]] = None) -> 'SensorConfig':
        """Build from a configuration dictionary, filling in defaults."""
        config = config or {}
        return cls(
            port=config.get("port", DEFAULT_PORT),
            baudrate=int(config.get("baudrate", DEFAULT_BAUDRATE)),
            timeout=float(config.get("timeout", DEFAULT_TIMEOUT)),
            retries=int(config.get("retries", DEFAULT_RETRIES)),
            work_period=int(config.get("work_period", DEFAULT_WORK_PERIOD)),
            device_id=int(config.get("device_id", BROADCAST_ID)),
        )
