from collections.abc import Iterator
from dataclasses import dataclass, fields
from enum import IntEnum

from .errors import InvalidRegister, OutOfRange, UnknownInstruction
from .utils import read_address, read_byte, read_nibble

# http://devernay.free.fr/hacks/chip8/C8TECH10.HTM#3.1


class Addr(int):
    """12 bit memory address, constructed by masking the low 12 bits."""

    MAX = 0x0FFF

    def __new__(cls, value: int = 0) -> "Addr":
        return super().__new__(cls, int(value) & cls.MAX)

    @classmethod
    def checked(cls, value: int) -> "Addr":
        if not 0 <= value <= cls.MAX:
            raise OutOfRange(value)
        return cls(value)

    def __repr__(self) -> str:
        return f"Addr(0x{int(self):03X})"


class Nibble(int):
    MAX = 0xF

    def __new__(cls, value: int = 0) -> "Nibble":
        return super().__new__(cls, int(value) & cls.MAX)

    def __repr__(self) -> str:
        return f"Nibble(0x{int(self):X})"


class VRegister(IntEnum):
    V0 = 0x0
    V1 = 0x1
    V2 = 0x2
    V3 = 0x3
    V4 = 0x4
    V5 = 0x5
    V6 = 0x6
    V7 = 0x7
    V8 = 0x8
    V9 = 0x9
    VA = 0xA
    VB = 0xB
    VC = 0xC
    VD = 0xD
    VE = 0xE
    VF = 0xF

    @classmethod
    def from_nibble(cls, value: int) -> "VRegister":
        if not 0 <= value <= Nibble.MAX:
            raise InvalidRegister(value)
        return cls(value)

    @classmethod
    def iter_to(cls, last: "VRegister") -> Iterator["VRegister"]:
        """Yield V0 up to and including ``last``."""
        return (cls(i) for i in range(last + 1))


class _Opcode:
    def encode(self) -> int:
        return encode(self)  # type: ignore[arg-type]

    def __str__(self) -> str:
        return mnemonic(self)  # type: ignore[arg-type]


@dataclass(frozen=True)
class Clear(_Opcode):
    pass


@dataclass(frozen=True)
class Return(_Opcode):
    pass


@dataclass(frozen=True)
class Sys(_Opcode):
    addr: Addr


@dataclass(frozen=True)
class Jump(_Opcode):
    addr: Addr


@dataclass(frozen=True)
class Call(_Opcode):
    addr: Addr


@dataclass(frozen=True)
class SkipEqualOperand(_Opcode):
    vx: VRegister
    byte: int


@dataclass(frozen=True)
class SkipNotEqualOperand(_Opcode):
    vx: VRegister
    byte: int


@dataclass(frozen=True)
class SkipEqual(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class LoadOperand(_Opcode):
    vx: VRegister
    byte: int


@dataclass(frozen=True)
class AddOperand(_Opcode):
    vx: VRegister
    byte: int


@dataclass(frozen=True)
class Load(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class Or(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class And(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class XOr(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class Add(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class Sub(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class ShiftRight(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class SubNegated(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class ShiftLeft(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class SkipNotEqual(_Opcode):
    vx: VRegister
    vy: VRegister


@dataclass(frozen=True)
class LoadI(_Opcode):
    addr: Addr


@dataclass(frozen=True)
class LongJump(_Opcode):
    addr: Addr


@dataclass(frozen=True)
class Random(_Opcode):
    vx: VRegister
    byte: int


@dataclass(frozen=True)
class Draw(_Opcode):
    vx: VRegister
    vy: VRegister
    nibble: Nibble


@dataclass(frozen=True)
class SkipKeyPressed(_Opcode):
    vx: VRegister


@dataclass(frozen=True)
class SkipKeyNotPressed(_Opcode):
    vx: VRegister


@dataclass(frozen=True)
class LoadRegisterDelayTimer(_Opcode):
    vx: VRegister


@dataclass(frozen=True)
class LoadKey(_Opcode):
    vx: VRegister


@dataclass(frozen=True)
class LoadDelayTimerRegister(_Opcode):
    vx: VRegister


@dataclass(frozen=True)
class LoadSoundTimerRegister(_Opcode):
    vx: VRegister


@dataclass(frozen=True)
class AddI(_Opcode):
    vx: VRegister


@dataclass(frozen=True)
class LoadSprite(_Opcode):
    vx: VRegister


@dataclass(frozen=True)
class LoadBinaryCodedDecimal(_Opcode):
    vx: VRegister


@dataclass(frozen=True)
class LoadMemoryRegisters(_Opcode):
    vx: VRegister


@dataclass(frozen=True)
class LoadRegistersMemory(_Opcode):
    vx: VRegister


Instruction = (
    Clear
    | Return
    | Sys
    | Jump
    | Call
    | SkipEqualOperand
    | SkipNotEqualOperand
    | SkipEqual
    | LoadOperand
    | AddOperand
    | Load
    | Or
    | And
    | XOr
    | Add
    | Sub
    | ShiftRight
    | SubNegated
    | ShiftLeft
    | SkipNotEqual
    | LoadI
    | LongJump
    | Random
    | Draw
    | SkipKeyPressed
    | SkipKeyNotPressed
    | LoadRegisterDelayTimer
    | LoadKey
    | LoadDelayTimerRegister
    | LoadSoundTimerRegister
    | AddI
    | LoadSprite
    | LoadBinaryCodedDecimal
    | LoadMemoryRegisters
    | LoadRegistersMemory
)


def decode(bits: int) -> Instruction:  # noqa: C901, PLR0911, PLR0912
    bits = int(bits) & 0xFFFF
    op, x, y, n = (read_nibble(bits, position) for position in range(4))
    addr = Addr(read_address(bits))
    byte = read_byte(bits)
    vx = VRegister.from_nibble(Nibble(x))
    vy = VRegister.from_nibble(Nibble(y))

    match (op, x, y, n):
        case (0x0, 0x0, 0xE, 0x0):
            return Clear()
        case (0x0, 0x0, 0xE, 0xE):
            return Return()
        case (0x0, *_):
            return Sys(addr)
        case (0x1, *_):
            return Jump(addr)
        case (0x2, *_):
            return Call(addr)
        case (0x3, *_):
            return SkipEqualOperand(vx, byte)
        case (0x4, *_):
            return SkipNotEqualOperand(vx, byte)
        case (0x5, _, _, 0x0):
            return SkipEqual(vx, vy)
        case (0x6, *_):
            return LoadOperand(vx, byte)
        case (0x7, *_):
            return AddOperand(vx, byte)
        case (0x8, _, _, 0x0):
            return Load(vx, vy)
        case (0x8, _, _, 0x1):
            return Or(vx, vy)
        case (0x8, _, _, 0x2):
            return And(vx, vy)
        case (0x8, _, _, 0x3):
            return XOr(vx, vy)
        case (0x8, _, _, 0x4):
            return Add(vx, vy)
        case (0x8, _, _, 0x5):
            return Sub(vx, vy)
        case (0x8, _, _, 0x6):
            return ShiftRight(vx, vy)
        case (0x8, _, _, 0x7):
            return SubNegated(vx, vy)
        case (0x8, _, _, 0xE):
            return ShiftLeft(vx, vy)
        case (0x9, _, _, 0x0):
            return SkipNotEqual(vx, vy)
        case (0xA, *_):
            return LoadI(addr)
        case (0xB, *_):
            return LongJump(addr)
        case (0xC, *_):
            return Random(vx, byte)
        case (0xD, *_):
            return Draw(vx, vy, Nibble(n))
        case (0xE, _, 0x9, 0xE):
            return SkipKeyPressed(vx)
        case (0xE, _, 0xA, 0x1):
            return SkipKeyNotPressed(vx)
        case (0xF, _, 0x0, 0x7):
            return LoadRegisterDelayTimer(vx)
        case (0xF, _, 0x0, 0xA):
            return LoadKey(vx)
        case (0xF, _, 0x1, 0x5):
            return LoadDelayTimerRegister(vx)
        case (0xF, _, 0x1, 0x8):
            return LoadSoundTimerRegister(vx)
        case (0xF, _, 0x1, 0xE):
            return AddI(vx)
        case (0xF, _, 0x2, 0x9):
            return LoadSprite(vx)
        case (0xF, _, 0x3, 0x3):
            return LoadBinaryCodedDecimal(vx)
        case (0xF, _, 0x5, 0x5):
            return LoadMemoryRegisters(vx)
        case (0xF, _, 0x6, 0x5):
            return LoadRegistersMemory(vx)
    raise UnknownInstruction(bits)


def _nnn(op: int, addr: int) -> int:
    return (op << 12) | (int(addr) & 0x0FFF)


def _xkk(op: int, vx: int, byte: int) -> int:
    return (op << 12) | (int(vx) << 8) | (int(byte) & 0xFF)


def _xyn(op: int, vx: int, vy: int, n: int) -> int:
    return (op << 12) | (int(vx) << 8) | (int(vy) << 4) | (int(n) & 0xF)


def encode(instruction: Instruction) -> int:  # noqa: C901, PLR0911, PLR0912
    match instruction:
        case Clear():
            return 0x00E0
        case Return():
            return 0x00EE
        case Sys(addr):
            return _nnn(0x0, addr)
        case Jump(addr):
            return _nnn(0x1, addr)
        case Call(addr):
            return _nnn(0x2, addr)
        case SkipEqualOperand(vx, byte):
            return _xkk(0x3, vx, byte)
        case SkipNotEqualOperand(vx, byte):
            return _xkk(0x4, vx, byte)
        case SkipEqual(vx, vy):
            return _xyn(0x5, vx, vy, 0x0)
        case LoadOperand(vx, byte):
            return _xkk(0x6, vx, byte)
        case AddOperand(vx, byte):
            return _xkk(0x7, vx, byte)
        case Load(vx, vy):
            return _xyn(0x8, vx, vy, 0x0)
        case Or(vx, vy):
            return _xyn(0x8, vx, vy, 0x1)
        case And(vx, vy):
            return _xyn(0x8, vx, vy, 0x2)
        case XOr(vx, vy):
            return _xyn(0x8, vx, vy, 0x3)
        case Add(vx, vy):
            return _xyn(0x8, vx, vy, 0x4)
        case Sub(vx, vy):
            return _xyn(0x8, vx, vy, 0x5)
        case ShiftRight(vx, vy):
            return _xyn(0x8, vx, vy, 0x6)
        case SubNegated(vx, vy):
            return _xyn(0x8, vx, vy, 0x7)
        case ShiftLeft(vx, vy):
            return _xyn(0x8, vx, vy, 0xE)
        case SkipNotEqual(vx, vy):
            return _xyn(0x9, vx, vy, 0x0)
        case LoadI(addr):
            return _nnn(0xA, addr)
        case LongJump(addr):
            return _nnn(0xB, addr)
        case Random(vx, byte):
            return _xkk(0xC, vx, byte)
        case Draw(vx, vy, nibble):
            return _xyn(0xD, vx, vy, nibble)
        case SkipKeyPressed(vx):
            return _xkk(0xE, vx, 0x9E)
        case SkipKeyNotPressed(vx):
            return _xkk(0xE, vx, 0xA1)
        case LoadRegisterDelayTimer(vx):
            return _xkk(0xF, vx, 0x07)
        case LoadKey(vx):
            return _xkk(0xF, vx, 0x0A)
        case LoadDelayTimerRegister(vx):
            return _xkk(0xF, vx, 0x15)
        case LoadSoundTimerRegister(vx):
            return _xkk(0xF, vx, 0x18)
        case AddI(vx):
            return _xkk(0xF, vx, 0x1E)
        case LoadSprite(vx):
            return _xkk(0xF, vx, 0x29)
        case LoadBinaryCodedDecimal(vx):
            return _xkk(0xF, vx, 0x33)
        case LoadMemoryRegisters(vx):
            return _xkk(0xF, vx, 0x55)
        case LoadRegistersMemory(vx):
            return _xkk(0xF, vx, 0x65)
    raise TypeError(f"not an instruction: {instruction!r}")


MNEMONICS: dict[type, str] = {
    Clear: "CLS",
    Return: "RET",
    Sys: "SYS {addr}",
    Jump: "JP {addr}",
    Call: "CALL {addr}",
    SkipEqualOperand: "SE {vx}, {byte}",
    SkipNotEqualOperand: "SNE {vx}, {byte}",
    SkipEqual: "SE {vx}, {vy}",
    LoadOperand: "LD {vx}, {byte}",
    AddOperand: "ADD {vx}, {byte}",
    Load: "LD {vx}, {vy}",
    Or: "OR {vx}, {vy}",
    And: "AND {vx}, {vy}",
    XOr: "XOR {vx}, {vy}",
    Add: "ADD {vx}, {vy}",
    Sub: "SUB {vx}, {vy}",
    ShiftRight: "SHR {vx}, {vy}",
    SubNegated: "SUBN {vx}, {vy}",
    ShiftLeft: "SHL {vx}, {vy}",
    SkipNotEqual: "SNE {vx}, {vy}",
    LoadI: "LD I, {addr}",
    LongJump: "JP V0, {addr}",
    Random: "RND {vx}, {byte}",
    Draw: "DRW {vx}, {vy}, {nibble}",
    SkipKeyPressed: "SKP {vx}",
    SkipKeyNotPressed: "SKNP {vx}",
    LoadRegisterDelayTimer: "LD {vx}, DT",
    LoadKey: "LD {vx}, K",
    LoadDelayTimerRegister: "LD DT, {vx}",
    LoadSoundTimerRegister: "LD ST, {vx}",
    AddI: "ADD I, {vx}",
    LoadSprite: "LD F, {vx}",
    LoadBinaryCodedDecimal: "LD B, {vx}",
    LoadMemoryRegisters: "LD [I], {vx}",
    LoadRegistersMemory: "LD {vx}, [I]",
}


def mnemonic(instruction: Instruction) -> str:
    operands = {}
    for field in fields(instruction):
        value = getattr(instruction, field.name)
        match field.name:
            case "addr":
                operands[field.name] = f"0x{int(value):03X}"
            case "vx" | "vy":
                operands[field.name] = f"V{int(value):X}"
            case "byte":
                operands[field.name] = f"0x{int(value):02X}"
            case _:
                operands[field.name] = str(int(value))
    return MNEMONICS[type(instruction)].format(**operands)
