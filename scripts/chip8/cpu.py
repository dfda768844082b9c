import logging
import random

from .errors import Chip8Error
from .instructions import Op, decode
from .machine import (
    FONT_HEIGHT, FONT_START_ADDRESS, ROM_START_ADDRESS,
    Display, Keypad, Memory, Registers, Stack,
)

logger = logging.getLogger(__name__)

VF = 0xF


# ******************** CPU SECTION
class Chip8:
    """
    the whole machine state plus the fetch/decode/execute engine

    quirks are fixed, not configurable:
    - shifts (8xy6/8xyE) operate on Vx in place and ignore Vy (CHIP-48/SUPER-CHIP)
    - Bnnn jumps to nnn + V0 (COSMAC VIP)
    - Fx1E sets VF when I goes past 0x0FFF (AMIGA)
    - Fx55/Fx65 leave I untouched
    - sprites wrap their start coordinates and get clipped at the screen edges
    """

    def __init__(self, rng=None):
        self.mem = Memory()
        self.stack = Stack()
        self.v_regs = Registers()
        self.pc = ROM_START_ADDRESS
        self.idx = 0    # specify where the sprites reside in memory
        self.dt = 0     # delay timer, active when non-zero
        self.st = 0     # sound timer, active when non-zero
        self.display = Display()
        self.keypad = Keypad()
        self.draw = False
        self.rng = rng or random.Random()
        self.instructions = {
            Op.CLS: self._clear_screen,
            Op.RET: self._return,
            Op.JP: self._jump,
            Op.CALL: self._call_addr,
            Op.SE_IMM: self._skip_if_eq,
            Op.SNE_IMM: self._skip_if_not_eq,
            Op.SE_REG: self._skip_if_eq_regs,
            Op.SNE_REG: self._skip_if_not_eq_regs,
            Op.LD_IMM: self._set_vk,
            Op.ADD_IMM: self._add_to_vk,
            Op.LD_REG: self._set_vx_to_vy,
            Op.OR: self._set_vx_or_vy,
            Op.AND: self._set_vx_and_vy,
            Op.XOR: self._set_vx_xor_vy,
            Op.ADD_REG: self._add_vx_vy,
            Op.SUB: self._sub_vx_vy,
            Op.SHR: self._shr,
            Op.SUBN: self._subn_vx_vy,
            Op.SHL: self._shl,
            Op.LD_I: self._set_idx,
            Op.JP_V0: self._jump_plus,
            Op.RND: self._random_byte_and,
            Op.DRW: self._to_screen,
            Op.SKP: self._skip_if_pressed,
            Op.SKNP: self._skip_if_not_pressed,
            Op.LD_VX_DT: self._set_vx_dt,
            Op.LD_VX_K: self._wait_keypress,
            Op.LD_DT_VX: self._set_dt_vx,
            Op.LD_ST_VX: self._set_st,
            Op.ADD_I: self._add_to_idx,
            Op.LD_F: self._select_char,
            Op.LD_B: self._bcd_repr,
            Op.LD_MEM_VX: self._store_vregs,
            Op.LD_VX_MEM: self._load_vregs,
        }

    def __str__(self):
        registers = f"PC_REGISTER:0x{self.pc:04x} | IDX_REGISTER:0x{self.idx:04x} | VARIABLE_REGISTERS:{self.v_regs!r}"
        timers = f"DELAY_TIMER:{self.dt} | SOUND_TIMER:{self.st}"
        stack = f"STACK:{self.stack!r}"
        devices = f"KEYPAD:{self.keypad!r} | LIT_PIXELS:{self.display.lit()}"
        return f"{registers}\n{timers}\n{stack}\n{devices}"

    # ********** LOADING
    def load_program(self, data):
        self.mem.load(data)

    def load_rom(self, path):
        return self.mem.load_rom(path)

    # ********** CONTROL FLOW
    def _clear_screen(self, ins):
        self.display.clear()
        self.draw = True

    def _return(self, ins):
        """return from a subroutine"""
        self.pc = self.stack.pop()

    def _jump(self, ins):
        self.pc = ins.nnn

    def _call_addr(self, ins):
        # pc already points past the CALL, that is the return address
        self.stack.push(self.pc)
        self.pc = ins.nnn

    def _jump_plus(self, ins):
        """jump to nnn + V0, COSMAC VIP addressing"""
        self.pc = ins.nnn + self.v_regs[0x0]

    def _skip_if_eq(self, ins):
        if self.v_regs[ins.x] == ins.nn:
            self._goto_next_instruction()

    def _skip_if_not_eq(self, ins):
        if self.v_regs[ins.x] != ins.nn:
            self._goto_next_instruction()

    def _skip_if_eq_regs(self, ins):
        if self.v_regs[ins.x] == self.v_regs[ins.y]:
            self._goto_next_instruction()

    def _skip_if_not_eq_regs(self, ins):
        if self.v_regs[ins.x] != self.v_regs[ins.y]:
            self._goto_next_instruction()

    # ********** REGISTERS AND ALU
    def _set_vk(self, ins):
        """set the value of one of the 16 variable registers, Vx"""
        self.v_regs[ins.x] = ins.nn

    def _add_to_vk(self, ins):
        """add to the value already present in Vx, VF is not affected"""
        self.v_regs[ins.x] = self.v_regs[ins.x] + ins.nn

    def _set_vx_to_vy(self, ins):
        self.v_regs[ins.x] = self.v_regs[ins.y]

    def _set_vx_or_vy(self, ins):
        self.v_regs[ins.x] = self.v_regs[ins.x] | self.v_regs[ins.y]

    def _set_vx_and_vy(self, ins):
        self.v_regs[ins.x] = self.v_regs[ins.x] & self.v_regs[ins.y]

    def _set_vx_xor_vy(self, ins):
        self.v_regs[ins.x] = self.v_regs[ins.x] ^ self.v_regs[ins.y]

    # operands are copied before writing Vx so that VF can be both operand and flag
    def _add_vx_vy(self, ins):
        """set Vx = Vx + Vy, VF = carry"""
        vx, vy = self.v_regs[ins.x], self.v_regs[ins.y]
        total = vx + vy
        self.v_regs[ins.x] = total
        self.v_regs[VF] = 1 if total > 0xFF else 0

    def _sub_vx_vy(self, ins):
        """set Vx = Vx - Vy, VF = NOT borrow"""
        vx, vy = self.v_regs[ins.x], self.v_regs[ins.y]
        self.v_regs[ins.x] = vx - vy
        self.v_regs[VF] = 1 if vx >= vy else 0

    def _subn_vx_vy(self, ins):
        """set Vx = Vy - Vx, VF = NOT borrow"""
        vx, vy = self.v_regs[ins.x], self.v_regs[ins.y]
        self.v_regs[ins.x] = vy - vx
        self.v_regs[VF] = 1 if vy >= vx else 0

    def _shr(self, ins):
        """set Vx = Vx SHR 1, Vy is ignored"""
        vx = self.v_regs[ins.x]
        self.v_regs[ins.x] = vx >> 1
        self.v_regs[VF] = vx & 0x1

    def _shl(self, ins):
        """set Vx = Vx SHL 1, Vy is ignored"""
        vx = self.v_regs[ins.x]
        self.v_regs[ins.x] = vx << 1
        self.v_regs[VF] = (vx & 0x80) >> 7

    def _random_byte_and(self, ins):
        self.v_regs[ins.x] = self.rng.randint(0, 255) & ins.nn

    # ********** INDEX REGISTER AND MEMORY
    def _set_idx(self, ins):
        self.idx = ins.nnn

    def _add_to_idx(self, ins):
        """set I = I + Vx, VF = 1 when I overflows past 0x0FFF"""
        total = self.idx + self.v_regs[ins.x]
        self.idx = total & 0xFFFF
        self.v_regs[VF] = 1 if total > 0x0FFF else 0

    def _select_char(self, ins):
        """set I to location of sprite for digit Vx"""
        self.idx = FONT_START_ADDRESS + (self.v_regs[ins.x] & 0xF) * FONT_HEIGHT

    def _bcd_repr(self, ins):
        """store hundreds, tens and ones digits of Vx at I, I+1 and I+2"""
        value = self.v_regs[ins.x]
        self.mem[self.idx] = value // 100
        self.mem[self.idx + 1] = value // 10 % 10
        self.mem[self.idx + 2] = value % 10

    def _store_vregs(self, ins):
        """store registers V0 through Vx (included) in memory starting at location I"""
        for r in range(ins.x + 1):
            self.mem[self.idx + r] = self.v_regs[r]

    def _load_vregs(self, ins):
        """read registers V0 through Vx (included) from memory starting at location I"""
        for r in range(ins.x + 1):
            self.v_regs[r] = self.mem[self.idx + r]

    # ********** TIMERS AND KEYPAD
    def _set_vx_dt(self, ins):
        self.v_regs[ins.x] = self.dt

    def _set_dt_vx(self, ins):
        self.dt = self.v_regs[ins.x]

    def _set_st(self, ins):
        self.st = self.v_regs[ins.x]

    def _skip_if_pressed(self, ins):
        if self.keypad.is_pressed(self.v_regs[ins.x]):
            self._goto_next_instruction()

    def _skip_if_not_pressed(self, ins):
        if not self.keypad.is_pressed(self.v_regs[ins.x]):
            self._goto_next_instruction()

    def _wait_keypress(self, ins):
        """wait for a key press and store its value in Vx"""
        key = self.keypad.first_pressed()
        if key is None:
            self.pc -= 0x2      # stay on the same instruction until a key is pressed
        else:
            self.v_regs[ins.x] = key

    # ********** DISPLAY
    def _to_screen(self, ins):
        """display n-byte sprite starting at memory location I at (Vx, Vy), set VF = collision"""
        # only the starting point wraps around, the sprite itself gets clipped
        x = self.v_regs[ins.x] & (self.display.w - 1)
        y = self.v_regs[ins.y] & (self.display.h - 1)
        self.v_regs[VF] = 0
        for row in range(ins.n):
            if y + row >= self.display.h:
                break
            sprite_byte = self.mem[self.idx + row]
            for col in range(8):
                if x + col >= self.display.w:
                    break
                if (sprite_byte >> (7 - col)) & 0x1:
                    if self.display.flip(x + col, y + row):
                        self.v_regs[VF] = 1
        self.draw = True

    # ********** CYCLE
    def _goto_next_instruction(self):
        self.pc += 0x2

    def fetch(self):
        """read the big-endian opcode at pc and move pc to the following one"""
        opcode = self.mem[self.pc] << 8 | self.mem[self.pc + 1]
        self._goto_next_instruction()
        return opcode

    def execute(self, ins):
        self.instructions[ins.op](ins)

    def step(self):
        """fetch, decode and execute a single instruction"""
        mem_addr = self.pc
        ins = None
        try:
            ins = decode(self.fetch())
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("mem_addr: 0x%04x    instruction: %s", mem_addr, ins.asm())
            self.execute(ins)
        except Chip8Error as err:
            err.mem_addr = mem_addr
            if ins is not None:
                err.instruction = ins
                err.opcode = ins.opcode
            raise
        return ins

    def tick_timers(self):
        """delay/sound timers (dt/st) countdown, called at 60Hz"""
        if self.dt > 0:
            self.dt -= 1
        if self.st > 0:
            self.st -= 1
