"""Tests for frame synchronization."""

import logging
import random
from itertools import islice

import pytest

from sds011.constants import FRAME_LEN, FrameID
from sds011.exceptions import ReadTimeout
from sds011.frame import AckFrame, DataFrame, FrameCodec
from sds011.reader import ReaderState, ReaderStateMachine

from tests.fakes import SAMPLE_FRAME, FakeChannel

SAMPLE = DataFrame(pm25=123.6, pm10=261.8, device_id=0xA160)
OTHER_FRAME = FrameCodec.encode_data(5.0, 7.5, 0x0102)
OTHER = DataFrame(pm25=5.0, pm10=7.5, device_id=0x0102)


def corrupt_checksum(frame: bytes) -> bytes:
    bad = bytearray(frame)
    bad[8] ^= 0x01
    return bytes(bad)


def test_single_frame():
    reader = ReaderStateMachine()
    assert reader.feed(SAMPLE_FRAME) == [SAMPLE]
    assert reader.state == ReaderState.SEEKING
    assert reader.buffered == 0


def test_leading_garbage_is_skipped():
    reader = ReaderStateMachine()
    assert reader.feed(b"\x00\x13\xab\xc0" + SAMPLE_FRAME) == [SAMPLE]


def test_states_while_accumulating():
    reader = ReaderStateMachine()
    reader.feed(b"\x01\x02")
    assert reader.state == ReaderState.SEEKING
    assert reader.buffered == 0

    reader.feed(SAMPLE_FRAME[:4])
    assert reader.state == ReaderState.ACCUMULATING
    assert reader.buffered == 4


def test_frame_split_across_chunks():
    reader = ReaderStateMachine()
    assert reader.feed(SAMPLE_FRAME[:3]) == []
    assert reader.feed(SAMPLE_FRAME[3:7]) == []
    assert reader.feed(SAMPLE_FRAME[7:]) == [SAMPLE]


def test_corrupted_frame_followed_by_valid_frame():
    """Only the valid frame comes out, in order."""
    reader = ReaderStateMachine()
    stream = corrupt_checksum(SAMPLE_FRAME) + OTHER_FRAME
    assert reader.feed(stream) == [OTHER]


def test_truncated_frame_does_not_swallow_next_frame():
    """Bytes after a false start are rescanned, so the next frame survives."""
    reader = ReaderStateMachine()
    stream = SAMPLE_FRAME[:4] + OTHER_FRAME + SAMPLE_FRAME
    assert reader.feed(stream) == [OTHER, SAMPLE]


def test_stray_head_byte_before_frame():
    reader = ReaderStateMachine()
    assert reader.feed(b"\xaa" + SAMPLE_FRAME) == [SAMPLE]


def test_payload_may_contain_head_byte():
    """0xAA inside a valid payload is data, not a frame start."""
    raw = FrameCodec.encode_data(17.0, 0.0, 0xAAAA)
    assert raw[2] == 0xAA
    reader = ReaderStateMachine()
    assert reader.feed(raw) == [DataFrame(17.0, 0.0, 0xAAAA)]


def test_unknown_frame_type_dropped_whole(caplog):
    unknown = bytearray(SAMPLE_FRAME)
    unknown[1] = 0xC1
    reader = ReaderStateMachine()
    with caplog.at_level(logging.WARNING, logger="sds011.reader"):
        frames = reader.feed(bytes(unknown) + OTHER_FRAME)
    assert frames == [OTHER]
    assert "Unknown frame type" in caplog.text


def test_bad_frame_logged_as_warning(caplog):
    reader = ReaderStateMachine()
    with caplog.at_level(logging.WARNING, logger="sds011.reader"):
        reader.feed(corrupt_checksum(SAMPLE_FRAME))
    assert "resynchronizing" in caplog.text


def test_mixed_data_and_ack_frames():
    ack_raw = FrameCodec.encode_reply(FrameID.ACK, bytes.fromhex("08 01 05 00 A1 60"))
    reader = ReaderStateMachine()
    frames = reader.feed(SAMPLE_FRAME + ack_raw + OTHER_FRAME)
    assert frames[0] == SAMPLE
    assert isinstance(frames[1], AckFrame)
    assert frames[1].value == 5
    assert frames[2] == OTHER


def test_buffer_never_exceeds_frame_length():
    rng = random.Random(7)
    noise = bytes(rng.choice((0xAA, 0xAB, 0xC0, rng.randrange(256))) for _ in range(2000))
    reader = ReaderStateMachine()
    for byte in noise:
        reader.feed_byte(byte)
        assert reader.buffered < FRAME_LEN


def test_valid_frames_survive_random_noise():
    """Frames separated by noise without head bytes are all recovered."""
    rng = random.Random(42)
    stream = bytearray()
    expected = []
    for i in range(50):
        stream.extend(bytes(rng.randrange(0, 0xAA) for _ in range(rng.randrange(0, 5))))
        raw = FrameCodec.encode_data(i / 10.0, i, 0x0100 + i)
        stream.extend(raw)
        expected.append(FrameCodec.decode(raw))
    assert ReaderStateMachine().feed(bytes(stream)) == expected


def test_reset_drops_partial_frame():
    reader = ReaderStateMachine()
    reader.feed(SAMPLE_FRAME[:6])
    reader.reset()
    assert reader.state == ReaderState.SEEKING
    assert reader.feed(SAMPLE_FRAME[6:]) == []


def test_read_frame_from_channel():
    reader = ReaderStateMachine(FakeChannel(b"\x00" + SAMPLE_FRAME))
    assert reader.read_frame(timeout=1.0) == SAMPLE


def test_read_frame_timeout_keeps_partial_frame():
    channel = FakeChannel(SAMPLE_FRAME[:5])
    reader = ReaderStateMachine(channel)
    with pytest.raises(ReadTimeout):
        reader.read_frame(timeout=0.5)
    assert reader.buffered == 5

    channel.push(SAMPLE_FRAME[5:])
    assert reader.read_frame(timeout=0.5) == SAMPLE


def test_read_frame_zero_timeout():
    reader = ReaderStateMachine(FakeChannel(SAMPLE_FRAME))
    with pytest.raises(ReadTimeout):
        reader.read_frame(timeout=0)


def test_read_frame_requires_channel():
    with pytest.raises(RuntimeError):
        ReaderStateMachine().read_frame()


def test_frames_is_lazy():
    channel = FakeChannel(SAMPLE_FRAME + OTHER_FRAME + SAMPLE_FRAME)
    reader = ReaderStateMachine(channel)
    frames = reader.frames(timeout=1.0)
    assert next(frames) == SAMPLE
    # Remaining frames untouched until requested
    assert len(channel.rx) == 2 * FRAME_LEN
    assert list(islice(frames, 2)) == [OTHER, SAMPLE]


def test_frames_stops_with_timeout_when_stream_dries_up():
    reader = ReaderStateMachine(FakeChannel(SAMPLE_FRAME))
    frames = reader.frames(timeout=0.1)
    assert next(frames) == SAMPLE
    with pytest.raises(ReadTimeout):
        next(frames)
