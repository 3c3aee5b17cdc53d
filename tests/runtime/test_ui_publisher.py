import unittest

from interval import DEFAULT_PRESETS, LoopScheduler, PhaseClock, SessionConfig
from runtime.ui import ClockUIPublisher, format_clock, round_label, round_marks


class FakeTime:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class StubUIServer:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []
        self.forgotten: list[tuple[str, ...]] = []

    def publish(self, event_type, **payload):
        self.events.append((event_type, payload))

    def forget(self, *event_types):
        self.forgotten.append(event_types)

    def last(self, event_type: str) -> dict:
        for published_type, payload in reversed(self.events):
            if published_type == event_type:
                return payload
        raise AssertionError(f"No {event_type} event published")


class DisplayHelperTests(unittest.TestCase):
    def test_format_clock(self) -> None:
        self.assertEqual("0:00", format_clock(0))
        self.assertEqual("0:09", format_clock(9))
        self.assertEqual("4:10", format_clock(250))

    def test_round_label(self) -> None:
        self.assertEqual("Get ready!", round_label("prepare", 0, 8))
        self.assertEqual("Round 3 of 8", round_label("rest", 3, 8))

    def test_round_marks(self) -> None:
        self.assertEqual(["pending", "pending", "pending"], round_marks("prepare", 0, 3))
        self.assertEqual(["done", "active", "pending"], round_marks("work", 2, 3))
        self.assertEqual([], round_marks("work", 2, 21))


class ClockUIPublisherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.time = FakeTime()
        self.scheduler = LoopScheduler(time_fn=self.time)
        self.clock = PhaseClock(scheduler=self.scheduler, tick_interval_seconds=0.25)
        self.ui = StubUIServer()
        self.publisher = ClockUIPublisher(self.ui, self.clock)
        self.clock.subscribe(self.publisher)

    def advance(self, seconds: float) -> None:
        for _ in range(int(round(seconds / 0.25))):
            self.time.now += 0.25
            self.scheduler.run_pending()

    def test_session_and_presets_payloads(self) -> None:
        self.publisher.publish_session(SessionConfig())
        self.publisher.publish_presets(DEFAULT_PRESETS)

        session = self.ui.last("session")
        self.assertEqual(250, session["total_seconds"])
        self.assertEqual("4:10", session["total_display"])
        presets = self.ui.last("presets")["presets"]
        self.assertEqual("Classic Tabata", presets[0]["name"])
        self.assertEqual("20s/10s x 8", presets[0]["detail"])

    def test_prepare_then_work_events(self) -> None:
        self.clock.start(SessionConfig(work_seconds=20, rest_seconds=10, rounds=2, prepare_seconds=10))

        phase = self.ui.last("phase")
        self.assertEqual("prepare", phase["phase"])
        self.assertEqual("Get ready!", phase["round_label"])
        tick = self.ui.last("tick")
        self.assertEqual(10, tick["seconds_left"])
        self.assertEqual(1.0, tick["phase_progress"])
        self.assertEqual(0.0, tick["progress_pct"])
        self.assertEqual(70, tick["total_seconds"])

        self.advance(15)

        phase = self.ui.last("phase")
        self.assertEqual("WORK", phase["label"])
        self.assertEqual(["active", "pending"], phase["round_marks"])
        tick = self.ui.last("tick")
        self.assertEqual(15, tick["seconds_left"])
        self.assertEqual(15, tick["elapsed_seconds"])
        self.assertAlmostEqual(15 / 70 * 100.0, tick["progress_pct"])

    def test_pause_resume_and_stop_events(self) -> None:
        self.clock.start(SessionConfig(work_seconds=20, rest_seconds=10, rounds=2, prepare_seconds=0))
        self.clock.pause()
        self.assertEqual({"state": "paused", "button": "RESUME"}, self.ui.last("control"))

        self.clock.resume()
        self.assertEqual("resumed", self.ui.last("control")["state"])
        self.assertEqual("work", self.ui.last("control")["phase"])

        self.clock.stop()
        self.assertEqual([("phase", "tick")], self.ui.forgotten)
        self.assertEqual({"state": "stopped"}, self.ui.last("control"))

    def test_completion_events(self) -> None:
        self.clock.start(SessionConfig(work_seconds=5, rest_seconds=5, rounds=2, prepare_seconds=0))
        self.advance(20)

        phase = self.ui.last("phase")
        self.assertEqual("complete", phase["phase"])
        self.assertEqual("Great workout!", phase["round_label"])
        self.assertEqual(["done", "done"], phase["round_marks"])
        tick = self.ui.last("tick")
        self.assertEqual(100.0, tick["progress_pct"])
        self.assertEqual(20, tick["elapsed_seconds"])
        self.assertEqual("completed", self.ui.last("control")["state"])

    def test_without_ui_server_events_are_dropped(self) -> None:
        publisher = ClockUIPublisher(None, self.clock)
        publisher.publish_session(SessionConfig())
        publisher.on_stop()


if __name__ == "__main__":
    unittest.main()
