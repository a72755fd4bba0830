class Chip8Error(Exception):
    """Base class for every failure raised by the interpreter core."""


class InvalidRegister(Chip8Error):
    def __init__(self, value: int) -> None:
        super().__init__(f"invalid register 0x{value:X}")
        self.value = value


class UnknownInstruction(Chip8Error):
    def __init__(self, opcode: int) -> None:
        super().__init__(f"unknown instruction 0x{opcode:04X}")
        self.opcode = opcode


class InvalidKey(Chip8Error):
    def __init__(self, value: int) -> None:
        super().__init__(f"invalid key 0x{value:X}")
        self.value = value


class OutOfRange(Chip8Error):
    def __init__(self, value: int) -> None:
        super().__init__(f"address out of range 0x{value:04X}")
        self.value = value


class StackOverflow(Chip8Error):
    def __init__(self, addr: int) -> None:
        super().__init__(f"stack overflow calling 0x{addr:03X}")
        self.addr = addr


class StackUnderflow(Chip8Error):
    def __init__(self) -> None:
        super().__init__("return with empty stack")


class ProgramTooLarge(Chip8Error):
    def __init__(self, size: int, capacity: int) -> None:
        super().__init__(f"program of {size} bytes exceeds capacity of {capacity} bytes")
        self.size = size
        self.capacity = capacity
