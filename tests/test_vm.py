from unittest.mock import Mock

import numpy as np
import pytest

from chip8vm.constants import FONT_SPRITE_ROWS, FONT_START, PROGRAM_START, STACK_SIZE
from chip8vm.data import FONT_DATA
from chip8vm.errors import InvalidKey, OutOfRange, StackOverflow, StackUnderflow, UnknownInstruction
from chip8vm.instructions import Addr, VRegister, decode
from chip8vm.keypad import Key
from chip8vm.vm import VM

V = VRegister


@pytest.fixture()
def vm() -> VM:
    return VM(rng=np.random.default_rng(0))


def run(vm: VM, *opcodes: int) -> None:
    for opcode in opcodes:
        vm.execute(decode(opcode))


@pytest.mark.parametrize("register", "0123456789ABCDEF")
def test_instruction_6xkk(vm: VM, register: str):
    run(vm, int(f"6{register}2A", 16))
    assert vm.registers[int(register, 16)] == 42


def test_program_clear():
    vm = VM(b"\x00\xe0")
    vm.display.screen[:, :] = True
    vm.step()
    assert not vm.display.snapshot().any()
    assert vm.pc == PROGRAM_START + 2


def test_program_load_and_add():
    vm = VM(b"\x60\x05\x70\x03")
    vm.step()
    vm.step()
    assert vm.get_register(V.V0) == 8
    assert vm.pc == PROGRAM_START + 4
    assert vm.cycles == 2


def test_add_operand_wraps_without_flag(vm: VM):
    vm.set_register(V.VF, 0x7)
    vm.set_register(V.V2, 0xFF)
    run(vm, 0x7201)
    assert vm.get_register(V.V2) == 0x00
    assert vm.get_register(V.VF) == 0x7


@pytest.mark.parametrize(
    ("opcode", "x", "y", "result", "flag"),
    [
        (0x8120, 0x00, 0xFF, 0xFF, 0),  # LD
        (0x8121, 0x01, 0x10, 0x11, 0),  # OR
        (0x8122, 0x01, 0x11, 0x01, 0),  # AND
        (0x8123, 0x01, 0x11, 0x10, 0),  # XOR
        (0x8124, 0xFE, 0x01, 0xFF, 0),  # ADD
        (0x8124, 0xFF, 0x01, 0x00, 1),  # ADD, carry
        (0x8125, 0x03, 0x02, 0x01, 1),  # SUB
        (0x8125, 0x02, 0x02, 0x00, 1),  # SUB, equal does not borrow
        (0x8125, 0x01, 0x02, 0xFF, 0),  # SUB, borrow
        (0x8127, 0x02, 0x03, 0x01, 1),  # SUBN
        (0x8127, 0x05, 0x03, 0xFE, 0),  # SUBN, borrow
        (0x8126, 0x00, 0x04, 0x02, 0),  # SHR
        (0x8126, 0x00, 0x05, 0x02, 1),  # SHR, bit shifted out
        (0x812E, 0x00, 0x40, 0x80, 0),  # SHL
        (0x812E, 0x00, 0x81, 0x02, 1),  # SHL, bit shifted out
    ],
)
def test_alu(vm: VM, opcode: int, x: int, y: int, result: int, flag: int):
    vm.set_register(V.V1, x)
    vm.set_register(V.V2, y)
    vm.set_register(V.VF, 0xAA)
    run(vm, opcode)
    assert vm.get_register(V.V1) == result
    assert vm.get_register(V.V2) == y
    if opcode & 0xF in (0x0, 0x1, 0x2, 0x3):
        assert vm.get_register(V.VF) == 0xAA
    else:
        assert vm.get_register(V.VF) == flag


def test_result_wins_over_flag_in_vf(vm: VM):
    vm.set_register(V.VF, 0xFF)
    vm.set_register(V.V1, 0x01)
    run(vm, 0x8F14)
    assert vm.get_register(V.VF) == 0x00

    vm.set_register(V.V1, 0x04)
    run(vm, 0x8F16)
    assert vm.get_register(V.VF) == 0x02


@pytest.mark.parametrize(
    ("opcode", "value", "skipped"),
    [
        (0x3342, 0x42, True),
        (0x3342, 0x41, False),
        (0x4342, 0x42, False),
        (0x4342, 0x41, True),
        (0x5340, 0x00, False),
        (0x5340, 0x10, True),
        (0x9340, 0x00, True),
        (0x9340, 0x10, False),
    ],
)
def test_skips(opcode: int, value: int, skipped: bool):  # noqa: FBT001
    vm = VM([opcode >> 8, opcode & 0xFF])
    vm.set_register(V.V3, value)
    vm.set_register(V.V4, 0x10)
    vm.step()
    assert vm.pc == PROGRAM_START + (4 if skipped else 2)


def test_jump(vm: VM):
    run(vm, 0x1FFF)
    assert vm.pc == 0x0FFF


def test_long_jump(vm: VM):
    vm.set_register(V.V0, 0x11)
    run(vm, 0xB111)
    assert vm.pc == 0x0122


def test_call_and_return():
    vm = VM(b"\x22\x04\x00\x00\x00\xee")
    vm.step()
    assert vm.pc == 0x204
    assert vm.stack == [0x202]
    vm.step()
    assert vm.pc == 0x202
    assert vm.stack == []


def test_stack_overflow(vm: VM):
    for _ in range(STACK_SIZE):
        run(vm, 0x2300)
    with pytest.raises(StackOverflow):
        run(vm, 0x2300)
    assert len(vm.stack) == STACK_SIZE


def test_stack_underflow(vm: VM):
    with pytest.raises(StackUnderflow):
        run(vm, 0x00EE)


def test_sys_is_noop_by_default(vm: VM):
    before = vm.registers
    run(vm, 0x0123)
    assert vm.registers == before
    assert vm.pc == PROGRAM_START


def test_sys_handler():
    handler = Mock()
    vm = VM(b"\x01\x23", sys_handler=handler)
    vm.step()
    handler.assert_called_once_with(vm, Addr(0x123))


def test_load_i(vm: VM):
    run(vm, 0xAAAA)
    assert vm.i == 0x0AAA


def test_random_uses_injected_rng():
    rng = Mock()
    rng.integers.return_value = 0xAB
    vm = VM(rng=rng)
    run(vm, 0xC40F)
    assert vm.get_register(V.V4) == 0x0B


def test_random_is_deterministic_with_seed():
    values = []
    for _ in range(2):
        vm = VM(rng=np.random.default_rng(1234))
        run(vm, 0xC0FF, 0xC1FF, 0xC2FF)
        values.append(vm.registers[:3])
    assert values[0] == values[1]


def test_draw_collision(vm: VM):
    vm.set_register(V.V0, 0x3F)
    vm.set_register(V.V1, 0x00)
    run(vm, 0xF029)  # font sprite F
    vm.set_register(V.V0, 0x0F)
    run(vm, 0xD015)
    assert vm.get_register(V.VF) == 0
    assert vm.display.snapshot().any()
    run(vm, 0xD015)
    assert vm.get_register(V.VF) == 1
    assert not vm.display.snapshot().any()


def test_draw_out_of_memory(vm: VM):
    vm.register_I = 0x0FFE
    with pytest.raises(OutOfRange):
        run(vm, 0xD015)


def test_keys(vm: VM):
    vm.set_register(V.V6, 0x4)
    vm.keypad.press(Key.KEY_4)
    run(vm, 0xE69E)
    assert vm.pc == PROGRAM_START + 2
    run(vm, 0xE6A1)
    assert vm.pc == PROGRAM_START + 2
    vm.keypad.release(Key.KEY_4)
    run(vm, 0xE6A1)
    assert vm.pc == PROGRAM_START + 4


def test_key_register_out_of_range(vm: VM):
    vm.set_register(V.V6, 0x10)
    with pytest.raises(InvalidKey):
        run(vm, 0xE69E)


def test_load_key_waits():
    vm = VM(b"\xf6\x0a\x60\x01")
    vm.keypad.press(Key.KEY_2)
    vm.step()
    assert vm.waiting_for_key
    assert vm.pc == PROGRAM_START + 2

    for _ in range(3):
        vm.step()
    assert vm.waiting_for_key
    assert vm.pc == PROGRAM_START + 2
    assert vm.get_register(V.V0) == 0

    vm.keypad.press(Key.KEY_9)
    vm.step()
    assert not vm.waiting_for_key
    assert vm.get_register(V.V6) == 9
    assert vm.pc == PROGRAM_START + 2

    vm.step()
    assert vm.get_register(V.V0) == 1


def test_timers(vm: VM):
    vm.set_register(V.V1, 2)
    run(vm, 0xF115, 0xF118)
    assert vm.delay_timer == 2
    assert vm.sound_timer == 2
    assert vm.sound_active
    vm.tick_timers()
    run(vm, 0xF207)
    assert vm.get_register(V.V2) == 1
    vm.tick_timers()
    vm.tick_timers()
    assert vm.delay_timer == 0
    assert vm.sound_timer == 0
    assert not vm.sound_active


def test_tick_zero_timers_is_noop(vm: VM):
    vm.tick_timers()
    assert vm.delay_timer == 0
    assert vm.sound_timer == 0


def test_add_i_leaves_flag(vm: VM):
    vm.register_I = 0x0FFF
    vm.set_register(V.V0, 0x01)
    vm.set_register(V.VF, 0x00)
    run(vm, 0xF01E)
    assert vm.i == 0x1000
    assert vm.get_register(V.VF) == 0


def test_load_sprite(vm: VM):
    vm.set_register(V.V0, 0xA)
    run(vm, 0xF029)
    assert vm.i == FONT_START + 0xA * FONT_SPRITE_ROWS
    assert list(vm.memory.read_slice(vm.i, FONT_SPRITE_ROWS)) == list(FONT_DATA[50:55])


def test_binary_coded_decimal(vm: VM):
    vm.set_register(V.V0, 123)
    vm.register_I = 0x0300
    run(vm, 0xF033)
    assert list(vm.memory.read_slice(0x300, 3)) == [1, 2, 3]


def test_store_and_load_registers(vm: VM):
    for reg in V:
        vm.set_register(reg, reg)
    vm.register_I = 0x0300
    run(vm, 0xFF55)
    assert list(vm.memory.read_slice(0x300, 16)) == list(range(16))
    assert vm.i == 0x0310

    vm.memory.write_byte(0x310, 0xAA)
    vm.memory.write_byte(0x311, 0xBB)
    vm.memory.write_byte(0x312, 0xCC)
    run(vm, 0xF165)
    assert vm.registers[:3] == [0xAA, 0xBB, 0x02]
    assert vm.i == 0x0312


def test_store_registers_out_of_memory_writes_nothing(vm: VM):
    vm.register_I = 0x0FFE
    with pytest.raises(OutOfRange):
        run(vm, 0xF255)
    assert vm.memory.read_byte(0x0FFE) == 0


def test_unknown_instruction_keeps_pc():
    vm = VM(b"\xff\xff")
    with pytest.raises(UnknownInstruction):
        vm.step()
    assert vm.pc == PROGRAM_START


def test_runtime_error_restores_pc():
    vm = VM(b"\x00\xee")
    with pytest.raises(StackUnderflow):
        vm.step()
    assert vm.pc == PROGRAM_START


def test_fetch_past_memory():
    vm = VM(b"\x1f\xff")
    vm.step()
    with pytest.raises(OutOfRange):
        vm.step()


def test_reset():
    vm = VM(b"\x60\x05\x70\x03")
    vm.step()
    vm.step()
    vm.memory.write_byte(PROGRAM_START, 0)
    vm.reset()
    assert vm.pc == PROGRAM_START
    assert vm.registers == [0] * 16
    assert vm.memory.read_op(PROGRAM_START) == 0x6005
    vm.step()
    assert vm.get_register(V.V0) == 5


def test_load_program_from_int_array():
    vm = VM(np.asarray([0x60, 0x05, 0x70, 0x03], dtype=np.int64))
    assert vm.memory.read_op(PROGRAM_START) == 0x6005
    assert vm.memory.read_op(PROGRAM_START + 2) == 0x7003
    assert vm.program == b"\x60\x05\x70\x03"
    vm.step()
    vm.step()
    assert vm.get_register(V.V0) == 8


def test_load_program_from_generator_survives_reset():
    vm = VM(byte for byte in (0x60, 0x05))
    vm.reset()
    assert vm.memory.read_op(PROGRAM_START) == 0x6005
