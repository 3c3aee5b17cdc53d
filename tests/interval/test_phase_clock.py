import unittest

from interval import ClockListener, LoopScheduler, PhaseClock, SessionConfig

TICK = 0.25


class FakeTime:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class RecordingListener(ClockListener):
    def __init__(self, clock: PhaseClock):
        self.clock = clock
        self.events: list[tuple] = []
        self.elapsed: list[int] = []

    def _record(self, *event) -> None:
        self.events.append(event)
        self.elapsed.append(self.clock.elapsed_seconds)

    def on_tick(self, seconds_left, phase_duration):
        self._record("tick", seconds_left, phase_duration)

    def on_phase_change(self, phase, round_number):
        self._record("phase", phase, round_number)

    def on_pause(self):
        self._record("pause")

    def on_resume(self, phase):
        self._record("resume", phase)

    def on_stop(self):
        self._record("stop")

    def on_complete(self):
        self._record("complete")

    def of_kind(self, kind: str) -> list[tuple]:
        return [event for event in self.events if event[0] == kind]


class PhaseClockTests(unittest.TestCase):
    def setUp(self) -> None:
        self.time = FakeTime()
        self.scheduler = LoopScheduler(time_fn=self.time)
        self.clock = PhaseClock(scheduler=self.scheduler, tick_interval_seconds=TICK)
        self.listener = RecordingListener(self.clock)
        self.clock.subscribe(self.listener)

    def advance(self, seconds: float) -> None:
        steps = int(round(seconds / TICK))
        for _ in range(steps):
            self.time.now += TICK
            self.scheduler.run_pending()

    def test_total_duration_matches_formula(self) -> None:
        for config in (
            SessionConfig(20, 10, 8, 10),
            SessionConfig(5, 5, 1, 0),
            SessionConfig(300, 300, 99, 60),
            SessionConfig(45, 15, 3, 0),
        ):
            with self.subTest(config=config):
                self.clock.start(config)
                expected = config.prepare_seconds + config.rounds * (
                    config.work_seconds + config.rest_seconds
                )
                self.assertEqual(expected, self.clock.total_duration_seconds)
                self.clock.stop()

    def test_start_with_prepare_enters_prepare_then_work(self) -> None:
        result = self.clock.start(SessionConfig(work_seconds=20, rest_seconds=10, rounds=8, prepare_seconds=10))

        self.assertTrue(result.accepted)
        self.assertEqual(250, self.clock.total_duration_seconds)
        self.assertEqual("prepare", self.clock.phase)
        self.assertEqual(10, self.clock.phase_duration)
        self.assertEqual(0, self.clock.current_round)
        self.assertEqual([("phase", "prepare", 0), ("tick", 10, 10)], self.listener.events)

        self.advance(10)

        self.assertEqual("work", self.clock.phase)
        self.assertEqual(1, self.clock.current_round)
        self.assertEqual(20, self.clock.phase_duration)
        self.assertEqual(20, self.clock.seconds_left)

    def test_start_without_prepare_emits_work_before_tick(self) -> None:
        self.clock.start(SessionConfig(work_seconds=20, rest_seconds=10, rounds=2, prepare_seconds=0))

        self.assertEqual("running", self.clock.control_state)
        self.assertEqual(1, self.clock.current_round)
        self.assertEqual([("phase", "work", 1), ("tick", 20, 20)], self.listener.events)
        self.assertTrue(self.clock.is_ticking)

    def test_phase_sequence_never_repeats_or_skips_a_round(self) -> None:
        self.clock.start(SessionConfig(work_seconds=5, rest_seconds=5, rounds=3, prepare_seconds=0))
        self.advance(31)

        transitions = [
            event for event in self.listener.events if event[0] in ("phase", "complete")
        ]
        self.assertEqual(
            [
                ("phase", "work", 1),
                ("phase", "rest", 1),
                ("phase", "work", 2),
                ("phase", "rest", 2),
                ("phase", "work", 3),
                ("phase", "rest", 3),
                ("complete",),
            ],
            transitions,
        )
        self.assertEqual("complete", self.clock.control_state)
        self.assertFalse(self.clock.is_ticking)

    def test_ticks_once_per_second_and_never_for_a_finished_phase(self) -> None:
        self.clock.start(SessionConfig(work_seconds=5, rest_seconds=5, rounds=1, prepare_seconds=0))
        self.advance(5)

        self.assertEqual(
            [
                ("phase", "work", 1),
                ("tick", 5, 5),
                ("tick", 4, 5),
                ("tick", 3, 5),
                ("tick", 2, 5),
                ("tick", 1, 5),
                ("phase", "rest", 1),
                ("tick", 5, 5),
            ],
            self.listener.events,
        )

    def test_pause_banks_remaining_time(self) -> None:
        self.clock.start(SessionConfig(work_seconds=20, rest_seconds=10, rounds=2, prepare_seconds=0))
        self.advance(3.5)

        result = self.clock.pause()
        self.assertTrue(result.accepted)
        self.assertEqual("paused", result.snapshot.control_state)
        self.assertEqual(17, self.clock.seconds_left)
        self.assertFalse(self.clock.is_ticking)

        self.time.now += 60.0
        self.scheduler.run_pending()
        self.assertEqual(17, self.clock.seconds_left)
        self.assertEqual("work", self.clock.phase)

        events_before_resume = len(self.listener.events)
        self.clock.resume()
        self.assertEqual(("resume", "work"), self.listener.events[events_before_resume])

        self.advance(TICK)
        self.assertEqual(("tick", 17, 20), self.listener.events[-1])

        self.advance(16.25)
        self.assertEqual("rest", self.clock.phase)

    def test_pause_resume_without_elapsed_time_keeps_seconds_left(self) -> None:
        self.clock.start(SessionConfig(work_seconds=20, rest_seconds=10, rounds=2, prepare_seconds=0))
        self.advance(7.25)
        before = self.clock.seconds_left

        self.clock.pause()
        self.clock.resume()
        self.advance(TICK)

        self.assertEqual(before, self.clock.seconds_left)

    def test_invalid_operations_are_silent_no_ops(self) -> None:
        pause_result = self.clock.pause()
        resume_result = self.clock.resume()
        self.assertFalse(pause_result.accepted)
        self.assertEqual("not_running", pause_result.reason)
        self.assertFalse(resume_result.accepted)
        self.assertEqual("not_paused", resume_result.reason)

        config = SessionConfig(work_seconds=20, rest_seconds=10, rounds=2, prepare_seconds=0)
        self.clock.start(config)
        second_start = self.clock.start(config)
        running_resume = self.clock.resume()

        self.assertFalse(second_start.accepted)
        self.assertEqual("not_idle", second_start.reason)
        self.assertFalse(running_resume.accepted)
        self.assertEqual(2, len(self.listener.events))

    def test_stop_is_idempotent(self) -> None:
        self.clock.start(SessionConfig(work_seconds=20, rest_seconds=10, rounds=2, prepare_seconds=10))
        self.advance(12)

        first = self.clock.stop()
        second = self.clock.stop()

        self.assertTrue(first.accepted)
        self.assertFalse(second.accepted)
        self.assertEqual(first.snapshot, second.snapshot)
        self.assertEqual("idle", second.snapshot.control_state)
        self.assertIsNone(second.snapshot.phase)
        self.assertEqual(0, second.snapshot.current_round)
        self.assertEqual(1, len(self.listener.of_kind("stop")))
        self.assertIsNone(self.scheduler.next_delay())

    def test_stop_while_paused_returns_to_idle(self) -> None:
        self.clock.start(SessionConfig(work_seconds=20, rest_seconds=10, rounds=2, prepare_seconds=0))
        self.clock.pause()
        self.clock.stop()

        self.assertEqual("idle", self.clock.control_state)
        self.assertEqual(0, self.clock.elapsed_seconds)
        self.assertTrue(self.clock.start(SessionConfig()).accepted)

    def test_long_suspension_lands_in_correct_phase_without_stale_ticks(self) -> None:
        self.clock.start(SessionConfig(work_seconds=20, rest_seconds=10, rounds=8, prepare_seconds=0))
        self.advance(5)
        self.assertEqual(15, self.clock.seconds_left)
        recorded = len(self.listener.events)

        self.time.now += 45.0
        self.scheduler.run_pending()

        self.assertEqual(
            [("phase", "rest", 2), ("tick", 10, 10)],
            self.listener.events[recorded:],
        )
        self.assertEqual(2, self.clock.current_round)
        self.assertEqual(50, self.clock.elapsed_seconds)

    def test_suspension_mid_phase_resumes_with_partial_remaining(self) -> None:
        self.clock.start(SessionConfig(work_seconds=20, rest_seconds=10, rounds=8, prepare_seconds=10))
        recorded = len(self.listener.events)

        self.time.now += 47.5
        self.scheduler.run_pending()

        # 47.5s in: prepare (10) + work 1 (20) + rest 1 (10), then 7.5s into work 2.
        self.assertEqual(
            [("phase", "work", 2), ("tick", 13, 20)],
            self.listener.events[recorded:],
        )
        self.assertEqual(47, self.clock.elapsed_seconds)

    def test_suspension_past_the_end_completes_once(self) -> None:
        config = SessionConfig(work_seconds=5, rest_seconds=5, rounds=3, prepare_seconds=0)
        self.clock.start(config)
        recorded = len(self.listener.events)

        self.time.now += 3600.0
        self.scheduler.run_pending()
        self.advance(2)

        self.assertEqual([("complete",)], self.listener.events[recorded:])
        self.assertEqual(config.total_duration_seconds, self.clock.elapsed_seconds)
        self.assertEqual(3, self.clock.current_round)

    def test_elapsed_is_monotonic_and_reaches_total(self) -> None:
        config = SessionConfig(work_seconds=5, rest_seconds=5, rounds=2, prepare_seconds=3)
        self.clock.start(config)
        self.advance(4.5)
        self.clock.pause()
        self.time.now += 30.0
        self.clock.resume()
        self.advance(10)
        self.time.now += 7.0
        self.scheduler.run_pending()
        self.advance(10)

        self.assertEqual("complete", self.clock.control_state)
        self.assertEqual(sorted(self.listener.elapsed), self.listener.elapsed)
        self.assertEqual(config.total_duration_seconds, self.listener.elapsed[-1])
        self.assertEqual(config.total_duration_seconds, self.clock.elapsed_seconds)

    def test_resume_at_zero_transitions_on_next_evaluation(self) -> None:
        self.clock.start(SessionConfig(work_seconds=5, rest_seconds=5, rounds=2, prepare_seconds=0))
        self.advance(4.75)
        self.time.now += TICK
        self.clock.pause()
        self.assertEqual(0, self.clock.seconds_left)

        recorded = len(self.listener.events)
        self.clock.resume()
        self.assertEqual([("resume", "work")], self.listener.events[recorded:])
        self.assertEqual("work", self.clock.phase)

        self.advance(TICK)
        self.assertEqual(("phase", "rest", 1), self.listener.events[recorded + 1])

    def test_phase_boundaries_stay_on_the_original_schedule(self) -> None:
        class AdvancingTime(FakeTime):
            """Moves forward on every read, like a busy host between two calls."""

            def __call__(self) -> float:
                value = self.now
                self.now += 0.1
                return value

        time_fn = AdvancingTime()
        scheduler = LoopScheduler(time_fn=time_fn)
        clock = PhaseClock(scheduler=scheduler, tick_interval_seconds=TICK)
        completed_at: list[float] = []

        class CompletionRecorder(ClockListener):
            def on_complete(self):
                completed_at.append(time_fn.now)

        clock.subscribe(CompletionRecorder())
        config = SessionConfig(work_seconds=5, rest_seconds=5, rounds=10, prepare_seconds=0)
        started_at = time_fn.now
        clock.start(config)
        while clock.control_state != "complete":
            time_fn.now += TICK
            scheduler.run_pending()

        # 19 boundaries; re-reading the clock at each would add 1.9s.
        self.assertLess(completed_at[0] - started_at, config.total_duration_seconds + 1.0)

    def test_elapsed_is_zero_when_idle(self) -> None:
        self.assertEqual(0, self.clock.elapsed_seconds)
        self.assertEqual(0, self.clock.total_duration_seconds)
        self.assertFalse(self.clock.snapshot().is_active)

    def test_failing_listener_does_not_break_the_clock(self) -> None:
        class Exploding(ClockListener):
            def on_tick(self, seconds_left, phase_duration):
                raise RuntimeError("boom")

        self.clock.unsubscribe(self.listener)
        self.clock.subscribe(Exploding())
        self.clock.subscribe(self.listener)

        with self.assertLogs("interval.clock", level="ERROR"):
            self.clock.start(SessionConfig(work_seconds=5, rest_seconds=5, rounds=1, prepare_seconds=0))
        self.assertEqual([("phase", "work", 1), ("tick", 5, 5)], self.listener.events)


if __name__ == "__main__":
    unittest.main()
