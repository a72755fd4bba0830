MEMORY_SIZE = 4096
PROGRAM_START = 0x200
FONT_START = 0x000
FONT_SPRITE_ROWS = 5

WIDTH = 64
HEIGHT = 32
MAX_SPRITE_ROWS = 15

STACK_SIZE = 16
NUM_REGISTERS = 16
NUM_KEYS = 16

TIMER_HZ = 60
