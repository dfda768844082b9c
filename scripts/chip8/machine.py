import logging

from .errors import InvalidRegisterError, MemoryAccessError, StackOverflowError, StackUnderflowError

logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
C8_FONTS = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
            0x20, 0x60, 0x20, 0x20, 0x70,  # 1
            0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
            0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
            0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
            0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
            0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
            0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
            0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
            0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
            0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
            0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
            0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
            0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
            0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
            0xF0, 0x80, 0xF0, 0x80, 0x80]  # F

MEMORY_SIZE = 4096
FONT_START_ADDRESS = 0x000
FONT_HEIGHT = 5                 # each character font is made of 5 bytes
ROM_START_ADDRESS = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - ROM_START_ADDRESS
NUM_REGISTERS = 16
NUM_KEYS = 16
STACK_SIZE = 16
SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32


def register(nibble):
    """convert a 4-bit opcode field into the index of a variable register"""
    if not 0x0 <= nibble <= 0xF:
        raise InvalidRegisterError(nibble)
    return nibble


# ******************** MEMORY SECTION
# ********** WRAPS A BYTEARRAY TO REPRESENT THE MAIN MEMORY WITH A LIMITED SIZE OF 4KB
class Memory:
    def __init__(self):
        self.inner = bytearray(MEMORY_SIZE)
        self.inner[FONT_START_ADDRESS:FONT_START_ADDRESS+len(C8_FONTS)] = bytes(C8_FONTS)

    @staticmethod
    def _check(address):
        # negative indexes would silently wrap around on a python sequence
        if not 0 <= address < MEMORY_SIZE:
            raise MemoryAccessError(address)

    def __getitem__(self, address):
        self._check(address)
        return self.inner[address]

    def __setitem__(self, address, value):
        self._check(address)
        self.inner[address] = value & 0xFF

    def __len__(self):
        return MEMORY_SIZE

    def load(self, data, address=ROM_START_ADDRESS):
        """copy a binary blob verbatim into memory starting at address"""
        end = address + len(data)
        if address < 0 or end > MEMORY_SIZE:
            raise MemoryAccessError(
                end - 1,
                f"A program of {len(data)} bytes does not fit in memory at 0x{address:04x} "
                f"(at most {MEMORY_SIZE - address} bytes available)",
            )
        self.inner[address:end] = data

    def load_rom(self, path):
        """load ROM file from the given path, the file must fit in the program area"""
        with open(path, mode='rb') as f:
            rom = f.read()
        self.load(rom)
        logger.info("The ROM at path %s has been loaded successfully (%d bytes)", path, len(rom))
        return len(rom)


# ********** WRAPS A LIST TO REPRESENT A STACK WITH A LIMITED SIZE OF 16 ADDRESSES
class Stack:
    def __init__(self, size=STACK_SIZE):
        self.addr_list = []
        self.size = size

    def __len__(self):
        return len(self.addr_list)

    def __repr__(self):
        return "[" + ", ".join(f"0x{a:04x}" for a in self.addr_list) + "]"

    def push(self, address):
        if len(self.addr_list) >= self.size:
            raise StackOverflowError(self.size)
        self.addr_list.append(address & 0xFFFF)

    def pop(self):
        if not self.addr_list:
            raise StackUnderflowError()
        return self.addr_list.pop()


# ********** FIXED SIZE TABLE OF THE 16 VARIABLE REGISTERS V0-VF
class Registers:
    def __init__(self):
        self.inner = bytearray(NUM_REGISTERS)

    def __getitem__(self, index):
        return self.inner[register(index)]

    def __setitem__(self, index, value):
        self.inner[register(index)] = value & 0xFF

    def __iter__(self):
        return iter(self.inner)

    def __len__(self):
        return NUM_REGISTERS

    def __repr__(self):
        return " ".join(f"V{i:X}={v:02x}" for i, v in enumerate(self.inner))


# ******************** I/O STATE SECTION
class Display:
    """64x32 monochrome bitmap, row-major, one boolean per pixel"""

    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT):
        self.w, self.h = w, h
        self.buffer = [False] * w * h

    def clear(self):
        self.buffer = [False] * self.w * self.h

    def get(self, x, y):
        return self.buffer[y * self.w + x]

    def flip(self, x, y):
        """XOR a lit sprite bit onto the pixel, return True if the pixel got erased"""
        idx = y * self.w + x
        erased = self.buffer[idx]
        self.buffer[idx] = not erased
        return erased

    def rows(self):
        """read-only snapshot of the grid, one tuple per row"""
        return tuple(tuple(self.buffer[y * self.w:(y + 1) * self.w]) for y in range(self.h))

    def lit(self):
        return sum(self.buffer)


class Keypad:
    """state of the 16 logical keys, written by the input adapter and only read by the cpu"""

    def __init__(self):
        self.keys = [False] * NUM_KEYS

    def update(self, states):
        states = list(states)
        if len(states) != NUM_KEYS:
            raise ValueError(f"Expected {NUM_KEYS} key states, got {len(states)}")
        self.keys = [bool(s) for s in states]

    def is_pressed(self, key):
        return self.keys[key & 0xF]

    def first_pressed(self):
        """lowest logical key currently held down, None if the keypad is untouched"""
        for key, pressed in enumerate(self.keys):
            if pressed:
                return key
        return None

    def __repr__(self):
        return "".join(f"{k:X}" for k, pressed in enumerate(self.keys) if pressed) or "-"
