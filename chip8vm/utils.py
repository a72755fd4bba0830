import numpy as np
import numpy.typing as npt


def display_bytes(data: bytes | bytearray | npt.NDArray[np.uint8 | np.uint16]) -> str:
    if isinstance(data, bytes):
        data = bytearray(data)
    buffer = [hex(b)[2:].zfill(2) for b in data]
    return "|".join(buffer)


def read_address(operation: int) -> int:
    return operation & 0x0FFF


def read_byte(operation: int) -> int:
    return operation & 0x00FF


def read_nibble(operation: int, position: int) -> int:
    # position 0 is the most significant nibble
    return (operation >> (4 * (3 - position))) & 0xF
