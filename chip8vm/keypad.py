from enum import Enum, IntEnum

from .constants import NUM_KEYS
from .errors import InvalidKey

# Layout of the original hex keypad:
#   1 2 3 C
#   4 5 6 D
#   7 8 9 E
#   A 0 B F


class Key(IntEnum):
    KEY_0 = 0x0
    KEY_1 = 0x1
    KEY_2 = 0x2
    KEY_3 = 0x3
    KEY_4 = 0x4
    KEY_5 = 0x5
    KEY_6 = 0x6
    KEY_7 = 0x7
    KEY_8 = 0x8
    KEY_9 = 0x9
    KEY_A = 0xA
    KEY_B = 0xB
    KEY_C = 0xC
    KEY_D = 0xD
    KEY_E = 0xE
    KEY_F = 0xF

    @classmethod
    def from_value(cls, value: int) -> "Key":
        if not 0 <= value < NUM_KEYS:
            raise InvalidKey(value)
        return cls(value)


class KeyState(Enum):
    RELEASED = 0
    PRESSED = 1


class Keypad:
    def __init__(self) -> None:
        self.states = [KeyState.RELEASED] * NUM_KEYS
        self.waiting = False
        self.presses: list[Key] = []

    def set_state(self, key: int, state: KeyState) -> None:
        key = Key.from_value(key)
        if self.waiting and state is KeyState.PRESSED and self.states[key] is KeyState.RELEASED:
            self.presses.append(key)
        self.states[key] = state

    def press(self, key: int) -> None:
        self.set_state(key, KeyState.PRESSED)

    def release(self, key: int) -> None:
        self.set_state(key, KeyState.RELEASED)

    def release_all(self) -> None:
        self.states = [KeyState.RELEASED] * NUM_KEYS
        self.waiting = False
        self.presses.clear()

    def is_pressed(self, key: int) -> bool:
        return self[key] is KeyState.PRESSED

    def pressed_keys(self) -> set[Key]:
        return {Key(i) for i, state in enumerate(self.states) if state is KeyState.PRESSED}

    def begin_wait(self) -> None:
        # keys already held down do not count, only new presses
        self.waiting = True
        self.presses.clear()

    def take_press(self) -> Key | None:
        if not self.presses:
            return None
        key = self.presses[0]
        self.waiting = False
        self.presses.clear()
        return key

    def __getitem__(self, key: int) -> KeyState:
        return self.states[Key.from_value(key)]

    def __str__(self) -> str:
        return "".join(f"{key:X}" if state is KeyState.PRESSED else "." for key, state in enumerate(self.states))
