class Chip8Error(Exception):
    """base class for every fatal condition raised by the interpreter"""
    mem_addr = None     # address of the failing opcode, filled in by Chip8.step
    opcode = None
    instruction = None

    def where(self):
        """trace line locating the failing instruction, None when raised outside of a cycle"""
        if self.mem_addr is None:
            return None
        if self.instruction is not None:
            return f"mem_addr: 0x{self.mem_addr:04x}    instruction: {self.instruction.asm()}"
        if self.opcode is not None:
            return f"mem_addr: 0x{self.mem_addr:04x}    opcode: 0x{self.opcode:04x}"
        return f"mem_addr: 0x{self.mem_addr:04x}"


class UnknownOpcodeError(Chip8Error):
    def __init__(self, opcode):
        self.opcode = opcode
        super().__init__(f"Unknown instruction 0x{opcode:04x}")


class StackUnderflowError(Chip8Error):
    def __init__(self):
        super().__init__("Cannot return from a subroutine: the stack is empty")


class StackOverflowError(Chip8Error):
    def __init__(self, size):
        self.size = size
        super().__init__(f"The CHIP-8 stack can contain at most {size} addresses. Limit exceeded")


class MemoryAccessError(Chip8Error):
    def __init__(self, address, msg=None):
        self.address = address
        super().__init__(msg or f"Memory access out of bounds at 0x{address:04x}")


class InvalidRegisterError(Chip8Error):
    def __init__(self, index):
        self.index = index
        super().__init__(f"There is no variable register V{index}")
