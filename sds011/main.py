#!/usr/bin/env python3
"""
SDS011 Reader - CLI Entry Point

Usage:
    sds011 --port /dev/ttyUSB0 --work 5
    sds011 --query --format csv --count 10
    python -m sds011 -v
"""

import argparse
import json
import logging
import sys
import time
from itertools import islice
from typing import List, Optional, TextIO

from .client import CommandSession, check_work_period
from .config import SensorConfig
from .constants import (
    DEFAULT_PORT, DEFAULT_BAUDRATE, DEFAULT_TIMEOUT, DEFAULT_RETRIES,
    DEFAULT_WORK_PERIOD, BROADCAST_ID, ReportingMode,
)
from .exceptions import InvalidParameterError, IoFailureError, NoResponseError
from .measurements import Measurement
from .transport import SerialTransport

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sds011",
        description="Reads data from Nova SDS011 Sensor",
    )
    parser.add_argument("-p", "--port", default=DEFAULT_PORT,
                        help="Specify port a sensor is connected to")
    parser.add_argument("-w", "--work", type=int, default=DEFAULT_WORK_PERIOD,
                        dest="work_period", help="Work period in minutes (0-30)")
    parser.add_argument("--baudrate", type=int, default=DEFAULT_BAUDRATE)
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT,
                        help="Response timeout per attempt in seconds")
    parser.add_argument("--retries", type=int, default=DEFAULT_RETRIES,
                        help="Attempts per command")
    parser.add_argument("--device-id", type=lambda s: int(s, 0), default=BROADCAST_ID,
                        help="Target sensor ID, e.g. 0xA160 (default: all)")
    parser.add_argument("--query", action="store_true",
                        help="Poll in query mode once per work period instead of streaming")
    parser.add_argument("--format", choices=("text", "csv", "json"), default="text",
                        dest="output_format")
    parser.add_argument("-n", "--count", type=int, default=None,
                        help="Stop after this many measurements")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def format_measurement(measurement: Measurement, output_format: str) -> str:
    if output_format == "csv":
        return measurement.to_csv()
    if output_format == "json":
        return json.dumps(measurement.to_dict())
    return str(measurement)


def stream(session: CommandSession, config: SensorConfig):
    """Measurements pushed by the sensor in active mode."""
    session.set_mode(ReportingMode.ACTIVE)
    session.set_work_period(config.work_period)
    return session.measurements()


def poll(session: CommandSession, config: SensorConfig):
    """Measurements requested once per work period in query mode."""
    session.set_mode(ReportingMode.QUERY)
    session.set_work_period(config.work_period)
    interval = config.work_period * 60 if config.work_period else 1
    while True:
        yield Measurement.from_frame(session.query())
        time.sleep(interval)


def run(config: SensorConfig, query: bool = False, output_format: str = "text",
        count: Optional[int] = None, out: Optional[TextIO] = None) -> int:
    """
    Open the port and print measurements.

    Returns:
        Process exit code
    """
    try:
        check_work_period(config.work_period)
        with SerialTransport(config.port, config.baudrate, config.timeout) as transport:
            session = CommandSession.from_config(transport, config)
            readings = poll(session, config) if query else stream(session, config)
            for measurement in islice(readings, count):
                print(format_measurement(measurement, output_format), file=out, flush=True)
    except InvalidParameterError as e:
        logger.error(f"Invalid parameter: {e}")
        return EXIT_USAGE
    except NoResponseError as e:
        logger.error(f"Sensor not responding on {config.port}: {e}")
        return EXIT_FAILURE
    except IoFailureError as e:
        logger.error(f"Serial I/O failure: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = SensorConfig.from_dict({
        "port": args.port,
        "baudrate": args.baudrate,
        "timeout": args.timeout,
        "retries": args.retries,
        "work_period": args.work_period,
        "device_id": args.device_id,
    })
    return run(config, args.query, args.output_format, args.count)


if __name__ == "__main__":
    sys.exit(main())
