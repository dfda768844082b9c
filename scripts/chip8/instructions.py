from collections import namedtuple
from enum import Enum

from .errors import UnknownOpcodeError
from .machine import register


class Op(Enum):
    """one tag per CHIP-8 operation, the value is the mnemonic used in trace lines"""
    CLS = "CLS"
    RET = "RET"
    JP = "JP 0x{nnn:03x}"
    CALL = "CALL 0x{nnn:03x}"
    SE_IMM = "SE V{x:X}, 0x{nn:02x}"
    SNE_IMM = "SNE V{x:X}, 0x{nn:02x}"
    SE_REG = "SE V{x:X}, V{y:X}"
    SNE_REG = "SNE V{x:X}, V{y:X}"
    LD_IMM = "LD V{x:X}, 0x{nn:02x}"
    ADD_IMM = "ADD V{x:X}, 0x{nn:02x}"
    LD_REG = "LD V{x:X}, V{y:X}"
    OR = "OR V{x:X}, V{y:X}"
    AND = "AND V{x:X}, V{y:X}"
    XOR = "XOR V{x:X}, V{y:X}"
    ADD_REG = "ADD V{x:X}, V{y:X}"
    SUB = "SUB V{x:X}, V{y:X}"
    SHR = "SHR V{x:X}"
    SUBN = "SUBN V{x:X}, V{y:X}"
    SHL = "SHL V{x:X}"
    LD_I = "LD I, 0x{nnn:03x}"
    JP_V0 = "JP V0, 0x{nnn:03x}"
    RND = "RND V{x:X}, 0x{nn:02x}"
    DRW = "DRW V{x:X}, V{y:X}, {n}"
    SKP = "SKP V{x:X}"
    SKNP = "SKNP V{x:X}"
    LD_VX_DT = "LD V{x:X}, DT"
    LD_VX_K = "LD V{x:X}, K"
    LD_DT_VX = "LD DT, V{x:X}"
    LD_ST_VX = "LD ST, V{x:X}"
    ADD_I = "ADD I, V{x:X}"
    LD_F = "LD F, V{x:X}"
    LD_B = "LD B, V{x:X}"
    LD_MEM_VX = "LD [I], V{x:X}"
    LD_VX_MEM = "LD V{x:X}, [I]"


# WATCH OUT: masks order is important!!!
# the first mask whose pattern table contains the masked opcode wins
OPCODE_MASKS = (
    (0xFFFF, {
        0x00E0: Op.CLS,
        0x00EE: Op.RET,
    }),
    (0xF0FF, {
        0xE09E: Op.SKP,
        0xE0A1: Op.SKNP,
        0xF007: Op.LD_VX_DT,
        0xF00A: Op.LD_VX_K,
        0xF015: Op.LD_DT_VX,
        0xF018: Op.LD_ST_VX,
        0xF01E: Op.ADD_I,
        0xF029: Op.LD_F,
        0xF033: Op.LD_B,
        0xF055: Op.LD_MEM_VX,
        0xF065: Op.LD_VX_MEM,
    }),
    (0xF00F, {
        0x5000: Op.SE_REG,
        0x8000: Op.LD_REG,
        0x8001: Op.OR,
        0x8002: Op.AND,
        0x8003: Op.XOR,
        0x8004: Op.ADD_REG,
        0x8005: Op.SUB,
        0x8006: Op.SHR,
        0x8007: Op.SUBN,
        0x800E: Op.SHL,
        0x9000: Op.SNE_REG,
    }),
    (0xF000, {
        0x1000: Op.JP,
        0x2000: Op.CALL,
        0x3000: Op.SE_IMM,
        0x4000: Op.SNE_IMM,
        0x6000: Op.LD_IMM,
        0x7000: Op.ADD_IMM,
        0xA000: Op.LD_I,
        0xB000: Op.JP_V0,
        0xC000: Op.RND,
        0xD000: Op.DRW,
    }),
)


class Instruction(namedtuple("Instruction", ["op", "x", "y", "n", "nn", "nnn", "opcode"])):
    """a decoded opcode: the operation tag plus every operand field already extracted"""
    __slots__ = ()

    def asm(self):
        return self.op.value.format(**self._asdict())

    def __str__(self):
        return f"0x{self.opcode:04x}  {self.asm()}"


def decode(opcode):
    """map a 16-bit opcode to its Instruction, raise UnknownOpcodeError when no pattern matches"""
    opcode &= 0xFFFF
    for mask, ops in OPCODE_MASKS:
        op = ops.get(opcode & mask)
        if op is not None:
            return Instruction(
                op=op,
                x=register((opcode & 0x0F00) >> 8),
                y=register((opcode & 0x00F0) >> 4),
                n=opcode & 0x000F,
                nn=opcode & 0x00FF,
                nnn=opcode & 0x0FFF,
                opcode=opcode,
            )
    raise UnknownOpcodeError(opcode)
