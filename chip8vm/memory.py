from collections.abc import Iterable

import numpy as np
import numpy.typing as npt

from .constants import FONT_START, MEMORY_SIZE, PROGRAM_START
from .data import FONT_DATA
from .errors import OutOfRange, ProgramTooLarge


class Memory:
    """4 KiB of RAM. Font sprites live below ``PROGRAM_START``, programs from there on.

    Every access is bounds checked and raises ``OutOfRange`` instead of wrapping or clamping.
    """

    def __init__(self) -> None:
        self.memory = np.zeros(MEMORY_SIZE, dtype=np.uint8)
        self.load_fonts()

    def load_fonts(self) -> None:
        self.memory[FONT_START : FONT_START + len(FONT_DATA)] = FONT_DATA

    def clear(self) -> None:
        self.memory[:] = 0
        self.load_fonts()

    def load_program(self, data: bytes | bytearray | Iterable[int]) -> int:
        if isinstance(data, (bytes, bytearray)):
            program = np.frombuffer(bytes(data), dtype=np.uint8)
        elif isinstance(data, np.ndarray):
            program = data.astype(np.int64)
        else:
            program = np.asarray(list(data), dtype=np.int64)
        capacity = MEMORY_SIZE - PROGRAM_START
        if len(program) > capacity:
            raise ProgramTooLarge(len(program), capacity)
        if len(program) and (program.min() < 0 or program.max() >= 2**8):
            raise ValueError("program bytes must be in range 0..255")
        self.memory[PROGRAM_START : PROGRAM_START + len(program)] = program.astype(np.uint8)
        return len(program)

    def read_byte(self, address: int) -> int:
        self._check(address)
        return int(self.memory[address])

    def write_byte(self, address: int, value: int) -> None:
        self._check(address)
        assert 0 <= value < 2**8
        self.memory[address] = value

    def read_slice(self, address: int, num: int) -> npt.NDArray[np.uint8]:
        address, num = int(address), int(num)
        if num:
            self._check(address)
            self._check(address + num - 1)
        return self.memory[address : address + num]

    def read_op(self, address: int) -> int:
        high, low = self.read_slice(address, 2)
        return (int(high) << 8) | int(low)

    def _check(self, address: int) -> None:
        if not 0 <= address < MEMORY_SIZE:
            raise OutOfRange(address)

    def __len__(self) -> int:
        return MEMORY_SIZE

    def __str__(self) -> str:
        return bytearray(self.memory).hex(sep="\n", bytes_per_sep=32)
