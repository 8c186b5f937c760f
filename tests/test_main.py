"""Tests for the command-line entry point."""

import io
import json
from unittest.mock import patch

import pytest

from sds011.config import SensorConfig
from sds011.constants import ReportingMode
from sds011.main import EXIT_FAILURE, EXIT_OK, EXIT_USAGE, main, parse_args, run

from tests.fakes import FakeChannel, SimulatedSensor


@pytest.fixture
def fake_port():
    """Replace SerialTransport with a simulated sensor."""
    holder = {"channel": SimulatedSensor(readings=[(1.0, 2.0), (3.0, 4.0)])}
    with patch("sds011.main.SerialTransport", side_effect=lambda *a, **kw: holder["channel"]):
        yield holder


def test_parse_args_defaults():
    args = parse_args([])
    assert args.port == "/dev/ttyUSB0"
    assert args.work_period == 5
    assert args.query is False
    assert args.output_format == "text"
    assert args.count is None


def test_parse_args_hex_device_id():
    args = parse_args(["--port", "/dev/ttyAMA0", "--work", "0", "--device-id", "0xA160"])
    assert args.port == "/dev/ttyAMA0"
    assert args.work_period == 0
    assert args.device_id == 0xA160


def test_stream_prints_measurements(fake_port):
    out = io.StringIO()
    code = run(SensorConfig(work_period=1), count=2, out=out)
    assert code == EXIT_OK
    lines = out.getvalue().splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("PM10=2.0 PM25=1.0")
    sensor = fake_port["channel"]
    assert sensor.work_period == 1
    assert sensor.mode == ReportingMode.ACTIVE


def test_stream_json(fake_port):
    out = io.StringIO()
    run(SensorConfig(), output_format="json", count=1, out=out)
    record = json.loads(out.getvalue())
    assert record["pm25"] == 1.0
    assert record["device_id"] == 0xA160


def test_query_mode_polls(fake_port):
    out = io.StringIO()
    with patch("sds011.main.time.sleep") as sleep:
        code = run(SensorConfig(work_period=2), query=True, output_format="csv",
                   count=2, out=out)
    assert code == EXIT_OK
    assert [line.split(", ")[1:] for line in out.getvalue().splitlines()] == [
        ["1.0", "2.0"], ["3.0", "4.0"],
    ]
    assert fake_port["channel"].mode == ReportingMode.QUERY
    sleep.assert_called_with(120)


def test_no_response_exits_nonzero(fake_port):
    fake_port["channel"] = FakeChannel()
    code = run(SensorConfig(timeout=0.01, retries=3), count=1, out=io.StringIO())
    assert code == EXIT_FAILURE
    assert len(fake_port["channel"].written) == 3


def test_invalid_work_period(fake_port):
    code = run(SensorConfig(work_period=31), count=1, out=io.StringIO())
    assert code == EXIT_USAGE
    assert fake_port["channel"].written == []


def test_main_end_to_end(fake_port, capsys):
    code = main(["--work", "3", "--count", "1", "--format", "csv"])
    assert code == EXIT_OK
    assert capsys.readouterr().out.strip().endswith("1.0, 2.0")
