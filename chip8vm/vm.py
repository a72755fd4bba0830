import logging
from collections.abc import Callable, Iterable

import numpy as np

from .constants import FONT_SPRITE_ROWS, FONT_START, NUM_REGISTERS, PROGRAM_START, STACK_SIZE
from .display import Display, DrawResult, Sprite, XCoordinate, YCoordinate
from .errors import Chip8Error, StackOverflow, StackUnderflow
from .instructions import (
    Add,
    AddI,
    AddOperand,
    Addr,
    And,
    Call,
    Clear,
    Draw,
    Instruction,
    Jump,
    Load,
    LoadBinaryCodedDecimal,
    LoadDelayTimerRegister,
    LoadI,
    LoadKey,
    LoadMemoryRegisters,
    LoadOperand,
    LoadRegisterDelayTimer,
    LoadRegistersMemory,
    LoadSoundTimerRegister,
    LoadSprite,
    LongJump,
    Or,
    Random,
    Return,
    ShiftLeft,
    ShiftRight,
    SkipEqual,
    SkipEqualOperand,
    SkipKeyNotPressed,
    SkipKeyPressed,
    SkipNotEqual,
    SkipNotEqualOperand,
    Sub,
    SubNegated,
    Sys,
    VRegister,
    XOr,
    decode,
)
from .keypad import Key, Keypad
from .memory import Memory
from .utils import display_bytes

# https://colineberhardt.github.io/wasm-rust-chip8/web/
# http://devernay.free.fr/hacks/chip8/C8TECH10.HTM

SysHandler = Callable[["VM", Addr], None]

VF = VRegister.VF


class VM:
    """CHIP-8 virtual machine.

    The host drives two independent clocks: ``step`` executes one instruction and
    ``tick_timers`` is meant to be called at 60 Hz. Nothing runs in the background.

    ``rng`` is the source for the ``RND`` instruction, any object with a
    ``numpy.random.Generator`` compatible ``integers`` method. ``sys_handler`` is
    invoked for ``SYS addr`` (0nnn); without one the instruction is a no-op.
    """

    def __init__(  # noqa: PLR0913
        self,
        program: bytes | bytearray | Iterable[int] | None = None,
        *,
        memory: Memory | None = None,
        display: Display | None = None,
        keypad: Keypad | None = None,
        rng: np.random.Generator | None = None,
        sys_handler: SysHandler | None = None,
    ) -> None:
        self.memory = memory if memory is not None else Memory()
        self.display = display if display is not None else Display()
        self.keypad = keypad if keypad is not None else Keypad()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.sys_handler = sys_handler
        self.program: bytes | None = None

        self.data_registers = np.zeros(NUM_REGISTERS, dtype=np.uint8)
        self.register_I = 0  # 16 bits
        self.register_PC = PROGRAM_START  # 12 bits addressable
        self.register_DT = 0
        self.register_ST = 0
        self.stack: list[int] = []
        self.waiting_register: VRegister | None = None
        self.cycles = 0

        if program is not None:
            self.load_program(program)

    def load_program(self, program: bytes | bytearray | Iterable[int]) -> None:
        size = self.memory.load_program(program)
        self.program = bytes(self.memory.read_slice(PROGRAM_START, size))
        logging.info("Loaded program of %d bytes at 0x%03X", size, PROGRAM_START)

    def reset(self) -> None:
        self.memory.clear()
        self.display.clear()
        self.keypad.release_all()
        self.data_registers[:] = 0
        self.register_I = 0
        self.register_PC = PROGRAM_START
        self.register_DT = 0
        self.register_ST = 0
        self.stack.clear()
        self.waiting_register = None
        self.cycles = 0
        if self.program is not None:
            self.memory.load_program(self.program)

    @property
    def pc(self) -> int:
        return self.register_PC

    @property
    def i(self) -> int:
        return self.register_I

    @property
    def registers(self) -> list[int]:
        return [int(value) for value in self.data_registers]

    @property
    def delay_timer(self) -> int:
        return self.register_DT

    @property
    def sound_timer(self) -> int:
        return self.register_ST

    @property
    def sound_active(self) -> bool:
        return self.register_ST > 0

    @property
    def waiting_for_key(self) -> bool:
        return self.waiting_register is not None

    def get_register(self, reg: VRegister) -> int:
        return int(self.data_registers[reg])

    def set_register(self, reg: VRegister, data: int) -> None:
        assert 0 <= data < 2**8
        self.data_registers[reg] = data

    def tick_timers(self) -> None:
        if self.register_DT > 0:
            self.register_DT -= 1
        if self.register_ST > 0:
            self.register_ST -= 1

    def fetch(self) -> int:
        return self.memory.read_op(self.register_PC)

    def step(self) -> None:
        if self.waiting_register is not None:
            self.poll_key_wait()
            return

        pc = self.register_PC
        instruction = decode(self.fetch())
        logging.debug("0x%03X %s", pc, instruction)
        self.register_PC = (pc + 2) & 0xFFFF
        try:
            self.execute(instruction)
        except Chip8Error:
            self.register_PC = pc
            raise
        self.cycles += 1

    def poll_key_wait(self) -> None:
        assert self.waiting_register is not None
        key = self.keypad.take_press()
        if key is None:
            return
        logging.info("Key %X pressed, stored in %s", key, self.waiting_register.name)
        self.set_register(self.waiting_register, int(key))
        self.waiting_register = None

    def skip_if(self, condition: bool) -> None:  # noqa: FBT001
        if condition:
            self.register_PC = (self.register_PC + 2) & 0xFFFF

    def execute(self, instruction: Instruction) -> None:  # noqa: C901, PLR0912, PLR0915
        match instruction:
            case Sys(addr):
                # 0nnn - SYS addr                           - Jump to a machine code routine at nnn.
                if self.sys_handler is not None:
                    self.sys_handler(self, addr)
                else:
                    logging.debug("Ignoring SYS 0x%03X", addr)
            case Clear():
                # 00E0 - CLS                                - Clear the display.
                self.display.clear()
            case Return():
                # 00EE - RET                                - Return from a subroutine.
                if not self.stack:
                    raise StackUnderflow
                self.register_PC = self.stack.pop()
            case Jump(addr):
                # 1nnn - JP addr                            - Jump to location nnn.
                self.register_PC = int(addr)
            case Call(addr):
                # 2nnn - CALL addr                          - Call subroutine at nnn.
                if len(self.stack) >= STACK_SIZE:
                    raise StackOverflow(addr)
                self.stack.append(self.register_PC)
                self.register_PC = int(addr)
            case SkipEqualOperand(vx, byte):
                # 3xkk - SE Vx, byte                        - Skip next instruction if Vx = kk.
                self.skip_if(self.get_register(vx) == byte)
            case SkipNotEqualOperand(vx, byte):
                # 4xkk - SNE Vx, byte                       - Skip next instruction if Vx != kk.
                self.skip_if(self.get_register(vx) != byte)
            case SkipEqual(vx, vy):
                # 5xy0 - SE Vx, Vy                          - Skip next instruction if Vx = Vy.
                self.skip_if(self.get_register(vx) == self.get_register(vy))
            case LoadOperand(vx, byte):
                # 6xkk - LD Vx, byte                        - Set Vx = kk.
                self.set_register(vx, byte)
            case AddOperand(vx, byte):
                # 7xkk - ADD Vx, byte                       - Set Vx = Vx + kk.
                self.set_register(vx, (self.get_register(vx) + byte) & 0xFF)
            case Load(vx, vy):
                # 8xy0 - LD Vx, Vy                          - Set Vx = Vy.
                self.set_register(vx, self.get_register(vy))
            case Or(vx, vy):
                # 8xy1 - OR Vx, Vy                          - Set Vx = Vx OR Vy.
                self.set_register(vx, self.get_register(vx) | self.get_register(vy))
            case And(vx, vy):
                # 8xy2 - AND Vx, Vy                         - Set Vx = Vx AND Vy.
                self.set_register(vx, self.get_register(vx) & self.get_register(vy))
            case XOr(vx, vy):
                # 8xy3 - XOR Vx, Vy                         - Set Vx = Vx XOR Vy.
                self.set_register(vx, self.get_register(vx) ^ self.get_register(vy))
            case Add(vx, vy):
                # 8xy4 - ADD Vx, Vy                         - Set Vx = Vx + Vy, set VF = carry.
                value = self.get_register(vx) + self.get_register(vy)
                self.set_register(VF, 1 if value >= 2**8 else 0)
                self.set_register(vx, value & 0xFF)
            case Sub(vx, vy):
                # 8xy5 - SUB Vx, Vy                         - Set Vx = Vx - Vy, set VF = NOT borrow.
                value_1 = self.get_register(vx)
                value_2 = self.get_register(vy)
                self.set_register(VF, 1 if value_1 >= value_2 else 0)
                self.set_register(vx, (value_1 - value_2) & 0xFF)
            case ShiftRight(vx, vy):
                # 8xy6 - SHR Vx {, Vy}                      - Set Vx = Vy SHR 1, VF = bit shifted out.
                value = self.get_register(vy)
                self.set_register(VF, value & 0x01)
                self.set_register(vx, value >> 1)
            case SubNegated(vx, vy):
                # 8xy7 - SUBN Vx, Vy                        - Set Vx = Vy - Vx, set VF = NOT borrow.
                value_1 = self.get_register(vx)
                value_2 = self.get_register(vy)
                self.set_register(VF, 1 if value_2 >= value_1 else 0)
                self.set_register(vx, (value_2 - value_1) & 0xFF)
            case ShiftLeft(vx, vy):
                # 8xyE - SHL Vx {, Vy}                      - Set Vx = Vy SHL 1, VF = bit shifted out.
                value = self.get_register(vy)
                self.set_register(VF, value >> 7)
                self.set_register(vx, (value << 1) & 0xFF)
            case SkipNotEqual(vx, vy):
                # 9xy0 - SNE Vx, Vy                         - Skip next instruction if Vx != Vy.
                self.skip_if(self.get_register(vx) != self.get_register(vy))
            case LoadI(addr):
                # Annn - LD I, addr                         - Set I = nnn.
                self.register_I = int(addr)
            case LongJump(addr):
                # Bnnn - JP V0, addr                        - Jump to location nnn + V0.
                self.register_PC = int(addr) + self.get_register(VRegister.V0)
            case Random(vx, byte):
                # Cxkk - RND Vx, byte                       - Set Vx = random byte AND kk.
                rnd = int(self.rng.integers(0, 2**8))
                self.set_register(vx, rnd & byte)
            case Draw(vx, vy, nibble):
                # Dxyn - DRW Vx, Vy, nibble                 - Display n-byte sprite at (Vx, Vy), set VF = collision.
                sprite = Sprite(self.memory.read_slice(self.register_I, nibble))
                x = XCoordinate(self.get_register(vx))
                y = YCoordinate(self.get_register(vy))
                result = self.display.draw(sprite, x, y)
                self.set_register(VF, 1 if result is DrawResult.OVERDRAWN else 0)
            case SkipKeyPressed(vx):
                # Ex9E - SKP Vx                             - Skip next instruction if key Vx is pressed.
                self.skip_if(self.keypad.is_pressed(Key.from_value(self.get_register(vx))))
            case SkipKeyNotPressed(vx):
                # ExA1 - SKNP Vx                            - Skip next instruction if key Vx is not pressed.
                self.skip_if(not self.keypad.is_pressed(Key.from_value(self.get_register(vx))))
            case LoadRegisterDelayTimer(vx):
                # Fx07 - LD Vx, DT                          - Set Vx = delay timer value.
                self.set_register(vx, self.register_DT)
            case LoadKey(vx):
                # Fx0A - LD Vx, K                           - Wait for a key press, store the key in Vx.
                logging.info("Waiting for key press into %s", vx.name)
                self.keypad.begin_wait()
                self.waiting_register = vx
            case LoadDelayTimerRegister(vx):
                # Fx15 - LD DT, Vx                          - Set delay timer = Vx.
                self.register_DT = self.get_register(vx)
            case LoadSoundTimerRegister(vx):
                # Fx18 - LD ST, Vx                          - Set sound timer = Vx.
                self.register_ST = self.get_register(vx)
            case AddI(vx):
                # Fx1E - ADD I, Vx                          - Set I = I + Vx, VF is left untouched.
                self.register_I = (self.register_I + self.get_register(vx)) & 0xFFFF
            case LoadSprite(vx):
                # Fx29 - LD F, Vx                           - Set I = location of sprite for digit Vx.
                digit = self.get_register(vx) & 0xF
                self.register_I = FONT_START + digit * FONT_SPRITE_ROWS
            case LoadBinaryCodedDecimal(vx):
                # Fx33 - LD B, Vx                           - Store BCD of Vx at I, I+1 and I+2.
                value = self.get_register(vx)
                Addr.checked(self.register_I + 2)
                self.memory.write_byte(self.register_I + 0, value // 100)
                self.memory.write_byte(self.register_I + 1, value // 10 % 10)
                self.memory.write_byte(self.register_I + 2, value % 10)
            case LoadMemoryRegisters(vx):
                # Fx55 - LD [I], Vx                         - Store V0 through Vx in memory starting at I.
                Addr.checked(self.register_I + vx)
                for offset, reg in enumerate(VRegister.iter_to(vx)):
                    self.memory.write_byte(self.register_I + offset, self.get_register(reg))
                self.register_I = (self.register_I + vx + 1) & 0xFFFF
            case LoadRegistersMemory(vx):
                # Fx65 - LD Vx, [I]                         - Read V0 through Vx from memory starting at I.
                read_bytes = self.memory.read_slice(self.register_I, vx + 1)
                for reg, value in zip(VRegister.iter_to(vx), read_bytes):
                    self.set_register(reg, int(value))
                self.register_I = (self.register_I + vx + 1) & 0xFFFF

    def __str__(self) -> str:
        return f"PC: {self.register_PC, hex(self.register_PC)}, I: {self.register_I}, regs: {display_bytes(self.data_registers)}"  # noqa: E501
