import logging
import time
from enum import Enum, auto

logger = logging.getLogger(__name__)

TIMER_FREQUENCY = 60.0
DEFAULT_INSTRUCTIONS_PER_SECOND = 700.0
MAX_LAG = 1.0   # seconds of backlog the scheduler is willing to catch up on


class Event(Enum):
    INSTRUCTION = auto()
    TIMER = auto()


class VirtualClock:
    """deterministic clock for bounded runs, sleeping only moves the virtual time forward"""

    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        if seconds > 0:
            self.now += seconds


# ********** DECIDES WHETHER THE NEXT TURN IS AN INSTRUCTION OR A TIMER TICK
class Scheduler:
    """
    each source keeps its own period so the instruction rate never changes
    how fast the delay and sound timers count down
    """

    def __init__(self, instructions_per_second=DEFAULT_INSTRUCTIONS_PER_SECOND, timers_per_second=TIMER_FREQUENCY,
                 timeout=None, clock=time.perf_counter, max_lag=MAX_LAG):
        if instructions_per_second <= 0 or timers_per_second <= 0:
            raise ValueError("Scheduler rates must be positive")
        self.instruction_period = 1.0 / instructions_per_second
        self.timer_period = 1.0 / timers_per_second
        self.timeout = timeout
        self.clock = clock
        self.max_lag = max_lag
        self.reset()

    def reset(self):
        self.start = self.clock()
        self.origin = self.start    # moves forward when a stall gets skipped
        # deadlines are derived from tick counts so rounding errors never accumulate
        self.instructions = 0
        self.timer_ticks = 0

    @property
    def next_instruction(self):
        return self.origin + (self.instructions + 1) * self.instruction_period

    @property
    def next_timer(self):
        return self.origin + (self.timer_ticks + 1) * self.timer_period

    def next_deadline(self):
        return min(self.next_instruction, self.next_timer)

    def expired(self, now=None):
        if self.timeout is None:
            return False
        now = self.clock() if now is None else now
        return now - self.start >= self.timeout

    def advance(self, now=None):
        """return every event due at now, earliest first"""
        now = self.clock() if now is None else now
        lag = now - self.next_deadline()
        if self.max_lag is not None and lag > self.max_lag:
            logger.warning("Running %.3fs behind, skipping the backlog", lag)
            self.origin += lag
        fired = []
        while self.next_deadline() <= now:
            # on a tie the instruction runs first
            if self.next_instruction <= self.next_timer:
                self.instructions += 1
                fired.append(Event.INSTRUCTION)
            else:
                self.timer_ticks += 1
                fired.append(Event.TIMER)
        return fired


def run(chip, scheduler, poll_input=None, present=None, sleep=time.sleep):
    """
    drive the chip until the scheduler times out or poll_input returns False
    return the number of instructions executed, interpreter errors are not caught here
    """
    executed = 0
    while not scheduler.expired():
        # the keypad is refreshed once per iteration, before any instruction runs
        if poll_input is not None and poll_input(chip.keypad) is False:
            logger.info("Input requested shutdown after %d instructions", executed)
            break
        for event in scheduler.advance():
            if event is Event.INSTRUCTION:
                chip.step()
                executed += 1
            else:
                chip.tick_timers()
        if chip.draw:
            if present is not None:
                present(chip.display)
            chip.draw = False
        sleep(max(0.0, scheduler.next_deadline() - scheduler.clock()))
    return executed
