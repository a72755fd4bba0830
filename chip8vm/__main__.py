import argparse
import logging
import sys
import time
from pathlib import Path

import keyboard

from .constants import TIMER_HZ
from .data import read_rom
from .errors import Chip8Error
from .keypad import Key, Keypad
from .vm import VM

CYCLES_PER_SECOND = 500

KEY_MAP = {
    Key.KEY_0: "0",
    Key.KEY_1: "1",
    Key.KEY_2: "2",
    Key.KEY_3: "3",
    Key.KEY_4: "4",
    Key.KEY_5: "5",
    Key.KEY_6: "6",
    Key.KEY_7: "7",
    Key.KEY_8: "8",
    Key.KEY_9: "9",
    Key.KEY_A: "a",
    Key.KEY_B: "b",
    Key.KEY_C: "c",
    Key.KEY_D: "d",
    Key.KEY_E: "e",
    Key.KEY_F: "f",
}


def poll_keyboard(keypad: Keypad) -> None:
    for key, name in KEY_MAP.items():
        if keyboard.is_pressed(name):
            keypad.press(key)
        else:
            keypad.release(key)


def run(vm: VM, cycles_per_second: int, max_cycles: int | None, use_keyboard: bool) -> None:  # noqa: FBT001
    cycles_per_tick = max(1, cycles_per_second // TIMER_HZ)
    executed = 0
    while max_cycles is None or executed < max_cycles:
        if use_keyboard:
            poll_keyboard(vm.keypad)
        for _ in range(cycles_per_tick):
            if max_cycles is not None and executed >= max_cycles:
                break
            vm.step()
            executed += 1
        vm.tick_timers()
        print(vm.display)  # noqa: T201
        time.sleep(1 / TIMER_HZ)


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a CHIP-8 rom in the terminal")
    parser.add_argument("rom", type=Path)
    parser.add_argument("--cycles-per-second", type=int, default=CYCLES_PER_SECOND)
    parser.add_argument("--max-cycles", type=int, default=None)
    parser.add_argument("--keyboard", action="store_true", help="feed the keypad from the host keyboard")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper())

    rom_file: Path = args.rom
    vm = VM(read_rom(rom_file))
    try:
        run(vm, args.cycles_per_second, args.max_cycles, args.keyboard)
    except Chip8Error:
        logging.exception("Emulation halted: %s", vm)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
