# CHIP-8 INFO
# https://chip-8.github.io/extensions/#chip-8
# https://chip-8.github.io/links/
#
# COMPATIBILITY QUIRKS TABLE
# https://games.gulrak.net/cadmium/chip8-opcode-table.html#quirk6
#
# TEST SUITE
# https://github.com/Timendus/chip8-test-suite


import argparse
import logging
import sys
import time

import os
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "no welcome message"   # this env var disable pygame's welcome message when imported
import pygame
from pygame.locals import (
    K_0, K_1, K_2, K_3,
    K_4, K_5, K_6, K_7,
    K_8, K_9, K_a, K_b,
    K_c, K_d, K_e, K_f,
)

from .cpu import Chip8
from .errors import Chip8Error
from .machine import NUM_KEYS, SCREEN_HEIGHT, SCREEN_WIDTH
from .timing import DEFAULT_INSTRUCTIONS_PER_SECOND, Scheduler, run

logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
KEY_MAPPINGS = {
    K_0: 0x0,
    K_1: 0x1,
    K_2: 0x2,
    K_3: 0x3,
    K_4: 0x4,
    K_5: 0x5,
    K_6: 0x6,
    K_7: 0x7,
    K_8: 0x8,
    K_9: 0x9,
    K_a: 0xA,
    K_b: 0xB,
    K_c: 0xC,
    K_d: 0xD,
    K_e: 0xE,
    K_f: 0xF,
}

DEBUG = True if int(os.getenv('DEBUG', 0)) >= 1 else False
SCALE = 15
BLUE = pygame.Color(80,69,155,255)
LIGHT_BLUE = pygame.Color(136,126,203,255)


# ******************** UTILITIES SECTION
def get_args(argv=None):
    parser = argparse.ArgumentParser(prog="chip8", description="CHIP-8 interpreter")
    parser.add_argument("-f", "--file", required=True, help="input rom file")
    parser.add_argument("--ips", type=float, default=DEFAULT_INSTRUCTIONS_PER_SECOND,
                        help="instructions executed per second (default: %(default)s)")
    parser.add_argument("--scale", type=int, default=SCALE,
                        help="size in pixels of a single CHIP-8 pixel (default: %(default)s)")
    parser.add_argument("--timeout", type=float, default=None,
                        help="stop the emulation after this many seconds")
    return parser.parse_args(argv)

def configure_logging(debug=DEBUG):
    logging.basicConfig(format="%(message)s")
    logging.getLogger("chip8").setLevel(logging.DEBUG if debug else logging.WARNING)

def crash_report(err, chip):
    lines = ["********** THE EMULATOR CRASHED WITH THE FOLLOWING STATE"]
    if err.where() is not None:
        lines.append(err.where())
    lines += [str(err), str(chip)]
    return "\n".join(lines)

def read_keys(pressed):
    """translate a pygame pressed-keys table into the 16 logical key states"""
    states = [False] * NUM_KEYS
    for key, logical in KEY_MAPPINGS.items():
        if pressed[key]:
            states[logical] = True
    return states


# ******************** I/O SECTION
class Screen:
    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT, s=SCALE, bg_color=BLUE, fg_color=LIGHT_BLUE):
        self.w, self.h, self.scale = w, h, s
        self.background = bg_color
        self.foreground = fg_color
        self.surface = pygame.display.set_mode(
            (w * self.scale, h * self.scale),
        )
        self.surface.fill(self.background)

    def render(self, display):
        """paint the whole display buffer and make it visible"""
        self.surface.fill(self.background)
        for y, row in enumerate(display.rows()):
            for x, lit in enumerate(row):
                if lit:
                    pygame.draw.rect(
                        self.surface,
                        self.foreground,
                        (x * self.scale, y * self.scale, self.scale, self.scale)
                    )
        pygame.display.flip()


def poll_events(keypad):
    """refresh the keypad from the host keyboard, return False when the user asked to quit"""
    for event in pygame.event.get():
        if event.type == pygame.QUIT:
            return False
        if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
            return False
    keypad.update(read_keys(pygame.key.get_pressed()))
    return True


# ******************** ENTRY POINT SECTION
def main(argv=None):
    args = get_args(argv)
    configure_logging()
    # pygame initialization
    pygame.init()
    pygame.display.set_caption(os.path.basename(args.file))
    try:
        # IO
        s = Screen(s=args.scale)
        # CPU
        chip = Chip8()
        try:
            chip.load_rom(args.file)
            scheduler = Scheduler(instructions_per_second=args.ips, timeout=args.timeout)
            # emulation loop
            executed = run(chip, scheduler, poll_input=poll_events, present=s.render, sleep=time.sleep)
        except Chip8Error as err:
            sys.exit(crash_report(err, chip))
        logger.info("Emulation stopped after %d instructions", executed)
    finally:
        pygame.quit()

