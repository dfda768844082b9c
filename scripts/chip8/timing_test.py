import unittest
from chip8.cpu import Chip8
from chip8.errors import StackUnderflowError
from chip8.timing import Event, Scheduler, VirtualClock, run


def chip_with(*opcodes):
    chip = Chip8()
    chip.load_program(b"".join(op.to_bytes(2, "big") for op in opcodes))
    return chip


class TestScheduler(unittest.TestCase):
    def test_nothing_due_at_start(self):
        clock = VirtualClock()
        scheduler = Scheduler(instructions_per_second=10, clock=clock)
        self.assertEqual(scheduler.advance(), [])

    def test_events_in_deadline_order(self):
        clock = VirtualClock()
        scheduler = Scheduler(instructions_per_second=4, timers_per_second=8, clock=clock)
        clock.now = 0.5
        # timers at 0.125, 0.25, 0.375, 0.5 and instructions at 0.25, 0.5
        self.assertEqual(scheduler.advance(), [
            Event.TIMER,
            Event.INSTRUCTION, Event.TIMER,
            Event.TIMER,
            Event.INSTRUCTION, Event.TIMER,
        ])
        self.assertEqual(scheduler.next_deadline(), 0.625)

    def test_rates_are_independent(self):
        clock = VirtualClock()
        scheduler = Scheduler(instructions_per_second=500, clock=clock)
        clock.now = 1.0
        events = scheduler.advance()
        self.assertAlmostEqual(events.count(Event.TIMER), 60, delta=1)
        self.assertAlmostEqual(events.count(Event.INSTRUCTION), 500, delta=1)

    def test_stall_backlog_is_skipped(self):
        clock = VirtualClock()
        scheduler = Scheduler(instructions_per_second=10, timeout=30.0, clock=clock)
        clock.now = 10.0
        events = scheduler.advance()
        self.assertLessEqual(events.count(Event.INSTRUCTION), 2)
        self.assertLessEqual(events.count(Event.TIMER), 7)
        self.assertGreater(scheduler.next_deadline(), 10.0)
        # the timeout still counts from the real start
        clock.now = 30.0
        self.assertTrue(scheduler.expired())

    def test_backlog_kept_without_lag_limit(self):
        clock = VirtualClock()
        scheduler = Scheduler(instructions_per_second=10, clock=clock, max_lag=None)
        clock.now = 10.0
        self.assertAlmostEqual(scheduler.advance().count(Event.INSTRUCTION), 100, delta=1)

    def test_timeout(self):
        clock = VirtualClock()
        scheduler = Scheduler(timeout=2.0, clock=clock)
        self.assertFalse(scheduler.expired())
        clock.now = 2.0
        self.assertTrue(scheduler.expired())
        self.assertFalse(Scheduler(clock=clock).expired(1e9))

    def test_rates_must_be_positive(self):
        with self.assertRaises(ValueError):
            Scheduler(instructions_per_second=0)


class TestRun(unittest.TestCase):
    def test_bounded_run_loops_forever_without_error(self):
        chip = chip_with(0x00E0, 0x1200)
        clock = VirtualClock()
        scheduler = Scheduler(instructions_per_second=100, timeout=1.0, clock=clock)
        frames = []
        executed = run(chip, scheduler, present=frames.append, sleep=clock.sleep)
        self.assertAlmostEqual(executed, 100, delta=2)
        self.assertIn(chip.pc, (0x200, 0x202))
        self.assertEqual(chip.display.lit(), 0)
        self.assertTrue(frames)
        self.assertFalse(chip.draw)

    def test_timers_count_at_60hz_while_waiting_for_a_key(self):
        chip = chip_with(0xF00A)
        chip.dt = 60
        clock = VirtualClock()
        scheduler = Scheduler(instructions_per_second=10, timeout=0.5, clock=clock)
        run(chip, scheduler, sleep=clock.sleep)
        self.assertAlmostEqual(chip.dt, 30, delta=1)
        self.assertEqual(chip.pc, 0x200)

    def test_input_polled_before_instructions(self):
        chip = chip_with(0xF30A, 0x1202)
        clock = VirtualClock()
        scheduler = Scheduler(instructions_per_second=10, timeout=1.0, clock=clock)
        polls = []

        def poll(keypad):
            polls.append(clock())
            keypad.update([k == 0x4 for k in range(16)])

        run(chip, scheduler, poll_input=poll, sleep=clock.sleep)
        self.assertEqual(chip.v_regs[3], 0x4)
        self.assertEqual(chip.pc, 0x202)
        self.assertTrue(polls)

    def test_input_can_stop_the_loop(self):
        chip = chip_with(0x1200)
        clock = VirtualClock()
        scheduler = Scheduler(instructions_per_second=10, clock=clock)
        self.assertEqual(run(chip, scheduler, poll_input=lambda keypad: False, sleep=clock.sleep), 0)

    def test_errors_propagate(self):
        chip = chip_with(0x00EE)
        clock = VirtualClock()
        scheduler = Scheduler(instructions_per_second=10, timeout=1.0, clock=clock)
        with self.assertRaises(StackUnderflowError):
            run(chip, scheduler, sleep=clock.sleep)


if __name__ == "__main__":
    unittest.main()
