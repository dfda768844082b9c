import os
import tempfile
import unittest
from chip8.errors import InvalidRegisterError, MemoryAccessError, StackOverflowError, StackUnderflowError
from chip8.machine import (
    C8_FONTS, MAX_ROM_SIZE, MEMORY_SIZE, ROM_START_ADDRESS,
    Display, Keypad, Memory, Registers, Stack, register,
)


class TestMemory(unittest.TestCase):
    def test_fonts_preloaded(self):
        mem = Memory()
        self.assertEqual(bytes(mem.inner[:80]), bytes(C8_FONTS))
        self.assertEqual(mem[0x50], 0)

    def test_bounds(self):
        mem = Memory()
        mem[MEMORY_SIZE - 1] = 0x1FF
        self.assertEqual(mem[MEMORY_SIZE - 1], 0xFF)
        for address in (-1, MEMORY_SIZE):
            with self.assertRaises(MemoryAccessError):
                mem[address]
            with self.assertRaises(MemoryAccessError):
                mem[address] = 0

    def test_load_program(self):
        mem = Memory()
        mem.load(b"\x00\xe0\x12\x00")
        self.assertEqual([mem[a] for a in range(0x200, 0x204)], [0x00, 0xE0, 0x12, 0x00])

    def test_largest_program_fits(self):
        mem = Memory()
        mem.load(b"\xAA" * MAX_ROM_SIZE)
        self.assertEqual(mem[MEMORY_SIZE - 1], 0xAA)

    def test_program_too_large(self):
        with self.assertRaises(MemoryAccessError):
            Memory().load(b"\x00" * (MAX_ROM_SIZE + 1))

    def test_load_rom_file(self):
        fd, path = tempfile.mkstemp(suffix=".ch8")
        with os.fdopen(fd, "wb") as f:
            f.write(b"\x6a\x3c")
        try:
            mem = Memory()
            self.assertEqual(mem.load_rom(path), 2)
            self.assertEqual((mem[ROM_START_ADDRESS], mem[ROM_START_ADDRESS + 1]), (0x6A, 0x3C))
        finally:
            os.remove(path)


class TestRegisters(unittest.TestCase):
    def test_register_conversion(self):
        self.assertEqual([register(n) for n in range(16)], list(range(16)))
        for nibble in (-1, 16):
            with self.assertRaises(InvalidRegisterError):
                register(nibble)

    def test_values_wrap_to_a_byte(self):
        regs = Registers()
        regs[0xA] = 0x13C
        self.assertEqual(regs[0xA], 0x3C)
        regs[0xB] = -1
        self.assertEqual(regs[0xB], 0xFF)

    def test_iteration_order(self):
        regs = Registers()
        for r in range(16):
            regs[r] = r * 3
        self.assertEqual(list(regs), [r * 3 for r in range(16)])


class TestStack(unittest.TestCase):
    def test_lifo(self):
        stack = Stack()
        stack.push(0x202)
        stack.push(0x300)
        self.assertEqual(stack.pop(), 0x300)
        self.assertEqual(stack.pop(), 0x202)
        self.assertEqual(len(stack), 0)

    def test_underflow(self):
        with self.assertRaises(StackUnderflowError):
            Stack().pop()

    def test_overflow(self):
        stack = Stack()
        for i in range(16):
            stack.push(0x200 + i)
        with self.assertRaises(StackOverflowError):
            stack.push(0x400)


class TestDisplay(unittest.TestCase):
    def test_flip_reports_erased_pixels(self):
        display = Display()
        self.assertFalse(display.flip(63, 31))
        self.assertTrue(display.get(63, 31))
        self.assertTrue(display.flip(63, 31))
        self.assertFalse(display.get(63, 31))

    def test_rows_and_clear(self):
        display = Display()
        display.flip(1, 0)
        rows = display.rows()
        self.assertEqual((len(rows), len(rows[0])), (32, 64))
        self.assertTrue(rows[0][1])
        display.clear()
        self.assertEqual(display.lit(), 0)


class TestKeypad(unittest.TestCase):
    def test_untouched(self):
        keypad = Keypad()
        self.assertIsNone(keypad.first_pressed())
        self.assertFalse(keypad.is_pressed(0x5))

    def test_update(self):
        keypad = Keypad()
        states = [False] * 16
        states[0xC] = states[0x7] = True
        keypad.update(states)
        self.assertEqual(keypad.first_pressed(), 0x7)
        self.assertTrue(keypad.is_pressed(0xC))

    def test_update_requires_16_keys(self):
        with self.assertRaises(ValueError):
            Keypad().update([True] * 15)


if __name__ == "__main__":
    unittest.main()
