import pytest

from p25link.timer import Timer


def test_new_timer_is_not_running():
    timer = Timer(1000, 2)
    assert timer.is_running() is False
    assert timer.has_expired() is False
    assert timer.timeout() == 2
    assert timer.elapsed() == 0


def test_timer_expires_after_timeout_ticks():
    timer = Timer(1000, 2)
    timer.start()
    assert timer.is_running() is True
    timer.clock(2000 - 1)
    assert timer.has_expired() is False
    timer.clock(1)
    assert timer.has_expired() is True
    assert timer.remaining() == 0


def test_zero_timeout_never_runs():
    timer = Timer(1000)
    timer.start()
    assert timer.is_running() is False
    timer.clock(10_000)
    assert timer.has_expired() is False
    assert timer.timeout() == 0


def test_stop_halts_counting():
    timer = Timer(1000, 1)
    timer.start()
    timer.clock(500)
    timer.stop()
    assert timer.is_running() is False
    timer.clock(5000)
    assert timer.has_expired() is False
    assert timer.elapsed() == 0


def test_elapsed_and_remaining_in_seconds():
    timer = Timer(1000, 5)
    timer.start()
    timer.clock(2500)
    assert timer.elapsed() == 2
    assert timer.remaining() == 2
    assert timer.elapsed() + timer.remaining() <= timer.timeout()


def test_start_with_new_timeout():
    timer = Timer(1000, 1)
    timer.start(3)
    assert timer.timeout() == 3
    timer.clock(1500)
    assert timer.has_expired() is False


def test_start_with_zero_resets():
    timer = Timer(1000, 1)
    timer.start()
    timer.start(0)
    assert timer.is_running() is False
    assert timer.timeout() == 0


def test_set_timeout_zero_stops_timer():
    timer = Timer(1000, 1)
    timer.start()
    timer.set_timeout(0)
    assert timer.is_running() is False


def test_milliseconds_timeout():
    timer = Timer(1000, 0, 1500)
    timer.start()
    timer.clock(1499)
    assert timer.has_expired() is False
    timer.clock(1)
    assert timer.has_expired() is True


def test_restart_resets_count():
    timer = Timer(1000, 1)
    timer.start()
    timer.clock(1000)
    assert timer.has_expired() is True
    timer.start()
    assert timer.has_expired() is False
    assert timer.is_running() is True


def test_invalid_ticks_per_second():
    with pytest.raises(ValueError):
        Timer(0, 1)