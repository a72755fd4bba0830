from collections.abc import Iterable, Iterator
from enum import Enum

import numpy as np
import numpy.typing as npt

from .constants import HEIGHT, MAX_SPRITE_ROWS, WIDTH

SpriteRow = tuple[bool, bool, bool, bool, bool, bool, bool, bool]


class Pixel(Enum):
    OFF = False
    ON = True


class DrawResult(Enum):
    DRAWN = 0
    OVERDRAWN = 1  # at least one pixel was switched off


class XCoordinate(int):
    def __new__(cls, value: int) -> "XCoordinate":
        return super().__new__(cls, int(value) % WIDTH)


class YCoordinate(int):
    def __new__(cls, value: int) -> "YCoordinate":
        return super().__new__(cls, int(value) % HEIGHT)


class Sprite:
    """Rows of 8 pixels each, most significant bit leftmost."""

    def __init__(self, rows: Iterable[int]) -> None:
        self.rows = [int(row) for row in rows]
        if len(self.rows) > MAX_SPRITE_ROWS:
            raise ValueError(f"sprites have at most {MAX_SPRITE_ROWS} rows, got {len(self.rows)}")

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[SpriteRow]:
        for row in self.rows:
            yield tuple(bool(row & (0x80 >> bit)) for bit in range(8))  # type: ignore[misc]


class Display:
    WIDTH = WIDTH
    HEIGHT = HEIGHT

    def __init__(self) -> None:
        self.screen = np.zeros((HEIGHT, WIDTH), dtype=np.bool_)

    def draw(self, sprite: Sprite, x: XCoordinate, y: YCoordinate) -> DrawResult:
        erased = False
        for i, row in enumerate(sprite):
            y_coord = (y + i) % HEIGHT
            for j, bit in enumerate(row):
                if not bit:
                    continue
                x_coord = (x + j) % WIDTH
                if self.screen[y_coord, x_coord]:
                    erased = True
                self.screen[y_coord, x_coord] ^= True
        return DrawResult.OVERDRAWN if erased else DrawResult.DRAWN

    def clear(self) -> None:
        self.screen[:, :] = False

    def pixel(self, x: int, y: int) -> Pixel:
        return Pixel(bool(self.screen[YCoordinate(y), XCoordinate(x)]))

    def snapshot(self) -> npt.NDArray[np.bool_]:
        return self.screen.copy()

    def __getitem__(self, position: tuple[int, int]) -> bool:
        x, y = position
        return self.pixel(x, y) is Pixel.ON

    def __iter__(self) -> Iterator[list[bool]]:
        for row in self.screen:
            yield [bool(e) for e in row]

    def __str__(self) -> str:
        lines = ["+" + "".join("█" if e else " " for e in row) + "+" for row in self]
        top_bot = ["+" * len(lines[0])]
        return "\n".join(top_bot + lines + top_bot)
