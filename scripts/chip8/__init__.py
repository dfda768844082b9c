from .cpu import Chip8
from .errors import Chip8Error
from .instructions import Instruction, Op, decode
