"""
Single-byte additive checksum.

The sensor sums the data bytes of a frame (everything between the ID byte
and the checksum byte) and keeps the low 8 bits.
"""


def checksum(data: bytes) -> int:
    """
    Calculate checksum over data bytes.

    Args:
        data: Bytes to sum

    Returns:
        Sum of all bytes modulo 256
    """
    return sum(data) & 0xFF


def verify(data: bytes, expected: int) -> bool:
    """Check data against a received checksum byte."""
    return checksum(data) == expected
