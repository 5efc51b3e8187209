from fakes import FakeClock
from tourassist.services.cooldown import CooldownTracker


def test_unknown_provider_is_not_cooling_down():
    tracker = CooldownTracker(clock=FakeClock())
    assert tracker.is_cooling_down("gemini-1.5-flash") is False
    assert tracker.remaining("gemini-1.5-flash") == 0.0


def test_cooldown_expires():
    clock = FakeClock()
    tracker = CooldownTracker(clock=clock)

    tracker.trigger("gemini-1.5-flash", 1.0)
    assert tracker.is_cooling_down("gemini-1.5-flash") is True

    clock.advance(0.5)
    assert tracker.remaining("gemini-1.5-flash") == 0.5

    clock.advance(0.5)
    assert tracker.is_cooling_down("gemini-1.5-flash") is False


def test_cooldown_is_per_provider():
    tracker = CooldownTracker(clock=FakeClock())
    tracker.trigger("mymemory", 5)

    assert tracker.is_cooling_down("mymemory") is True
    assert tracker.is_cooling_down("libretranslate") is False


def test_shorter_trigger_does_not_cut_running_cooldown():
    clock = FakeClock()
    tracker = CooldownTracker(clock=clock)

    tracker.trigger("mymemory", 10)
    tracker.trigger("mymemory", 1)
    clock.advance(5)

    assert tracker.is_cooling_down("mymemory") is True
