"""
Tests for the playback controller state machine, driven through a fake port.
"""

import pytest

from player.engine import PlaybackEngine
from shared.models import PlaybackStatus, Track


def _track(track_id, preview=True):
    return Track(
        id=track_id,
        name=f"Song {track_id}",
        artists=["Someone"],
        preview_url=f"https://p.scdn.co/mp3-preview/{track_id}" if preview else None,
    )


@pytest.fixture
def engine(port):
    return PlaybackEngine(port)


@pytest.fixture
def queued(engine):
    for track_id in ("A", "B", "C"):
        engine.add_to_queue(_track(track_id))
    return engine


def test_starts_idle(engine, port):
    state = engine.get_state()
    assert state.status is PlaybackStatus.IDLE
    assert state.current_track is None
    assert state.current_index == -1
    assert port.volume == pytest.approx(0.7)


def test_play_track_loads_and_plays(engine, port):
    engine.play_track(_track("A"))

    assert engine.status is PlaybackStatus.PLAYING
    assert engine.is_playing
    assert port.calls[-2:] == [("load", "https://p.scdn.co/mp3-preview/A"), ("play",)]
    assert engine.current_time == 0


def test_track_without_preview_stays_loaded(engine, port):
    engine.play_track(_track("X", preview=False))

    assert engine.status is PlaybackStatus.LOADED
    assert engine.is_playing is False
    assert engine.current_track.id == "X"
    assert not [c for c in port.calls if c[0] in ("load", "play")]


def test_port_failure_leaves_track_loaded(engine, port):
    def boom(url):
        raise RuntimeError("device busy")
    port.load = boom

    engine.play_track(_track("A"))

    assert engine.status is PlaybackStatus.LOADED


@pytest.mark.parametrize("requested,expected", [(1.5, 1.0), (-0.2, 0.0), (0.3, 0.3)])
def test_volume_is_clamped(engine, port, requested, expected):
    engine.set_volume(requested)
    assert engine.volume == pytest.approx(expected)
    assert port.volume == pytest.approx(expected)


def test_previous_at_first_item_is_noop(queued, port):
    queued.play_from_queue(0)
    calls = len(port.calls)

    queued.previous()

    assert queued.current_index == 0
    assert queued.current_track.id == "A"
    assert len(port.calls) == calls


def test_next_at_last_item_is_noop(queued):
    queued.play_from_queue(2)
    queued.next()
    assert queued.current_index == 2
    assert queued.current_track.id == "C"


def test_next_and_previous_move_through_queue(queued):
    queued.play_from_queue(0)
    queued.next()
    assert queued.current_track.id == "B"
    queued.previous()
    assert queued.current_track.id == "A"
    assert queued.status is PlaybackStatus.PLAYING


def test_play_from_queue_out_of_range_is_noop(queued):
    queued.play_from_queue(7)
    assert queued.status is PlaybackStatus.IDLE
    assert queued.current_index == -1


def test_natural_end_advances_to_next_track(queued, port):
    queued.play_from_queue(0)
    port.fire_time_update(29.5)

    port.fire_ended()

    assert queued.current_track.id == "B"
    assert queued.current_index == 1
    assert queued.current_time == 0
    assert queued.status is PlaybackStatus.PLAYING
    assert port.calls[-2:] == [("load", "https://p.scdn.co/mp3-preview/B"), ("play",)]


def test_end_of_last_track_goes_idle(queued, port):
    queued.play_from_queue(2)
    port.fire_time_update(30.0)

    port.fire_ended()

    assert queued.status is PlaybackStatus.IDLE
    assert queued.is_playing is False
    assert queued.current_time == 0
    assert queued.current_track.id == "C"


def test_pause_and_resume(engine, port):
    engine.play_track(_track("A"))

    engine.pause()
    assert engine.status is PlaybackStatus.PAUSED
    assert port.calls[-1] == ("pause",)

    engine.resume()
    assert engine.status is PlaybackStatus.PLAYING
    assert port.calls[-1] == ("play",)


def test_pause_and_resume_outside_their_state_are_noops(engine, port):
    engine.pause()
    engine.resume()
    assert engine.status is PlaybackStatus.IDLE
    assert ("pause",) not in port.calls
    assert ("play",) not in port.calls


def test_toggle(engine):
    engine.play_track(_track("A"))
    engine.toggle()
    assert engine.status is PlaybackStatus.PAUSED
    engine.toggle()
    assert engine.status is PlaybackStatus.PLAYING


def test_seek_is_clamped_to_duration(engine, port):
    engine.play_track(_track("A"))
    port.fire_loaded_metadata(30.0)

    engine.seek(45)
    assert engine.current_time == 30.0
    assert port.calls[-1] == ("seek", 30.0)

    engine.seek(-3)
    assert engine.current_time == 0.0


def test_seek_before_metadata_only_clamps_below(engine, port):
    engine.play_track(_track("A"))
    engine.seek(12)
    assert engine.current_time == 12.0
    assert port.calls[-1] == ("seek", 12.0)


def test_seek_without_preview_does_not_touch_port(engine, port):
    engine.play_track(_track("X", preview=False))
    engine.seek(5)
    assert ("seek", 5.0) not in port.calls


def test_time_and_metadata_events_update_state(engine, port):
    engine.play_track(_track("A"))
    port.fire_loaded_metadata(29.7)
    port.fire_time_update(3.25)

    state = engine.get_state()
    assert state.duration == 29.7
    assert state.current_time == 3.25


def test_clear_queue_keeps_current_track_playing(queued, port):
    queued.play_from_queue(1)

    queued.clear_queue()

    assert queued.queue == []
    assert queued.current_index == -1
    assert queued.current_track.id == "B"
    assert queued.status is PlaybackStatus.PLAYING
    assert ("stop",) not in port.calls


def test_port_error_pauses(engine, port):
    engine.play_track(_track("A"))

    port.fire_error(RuntimeError("decode failed"))

    assert engine.status is PlaybackStatus.PAUSED
    assert engine.is_playing is False


def test_is_current_track(engine):
    assert engine.is_current_track("A") is False
    engine.play_track(_track("A"))
    assert engine.is_current_track("A")
    assert not engine.is_current_track("B")


def test_listeners_receive_snapshots(engine):
    states = []
    engine.add_state_listener(states.append)

    engine.play_track(_track("A"))
    engine.pause()

    assert [s.status for s in states][-2:] == [PlaybackStatus.PLAYING, PlaybackStatus.PAUSED]
    assert states[-1].to_dict()["current_track"]["id"] == "A"

    engine.remove_state_listener(states.append)
    count = len(states)
    engine.resume()
    assert len(states) == count


def test_failing_listener_does_not_break_transport(engine):
    def bad(state):
        raise ValueError("listener bug")
    engine.add_state_listener(bad)

    engine.play_track(_track("A"))

    assert engine.status is PlaybackStatus.PLAYING


def test_snapshots_keep_cursor_and_current_track_in_step(queued, port):
    queued.play_from_queue(0)
    states = []
    queued.add_state_listener(states.append)

    queued.next()
    queued.next()
    queued.previous()
    queued.play_from_queue(0)
    port.fire_ended()

    assert states
    for state in states:
        assert state.queue[state.current_index].id == state.current_track.id
    assert [s.current_track.id for s in states] == ["B", "C", "B", "A", "B"]


def test_failed_source_on_last_track_ends_idle(queued, port):
    queued.play_from_queue(2)

    port.fire_error(RuntimeError("404 on preview"))
    port.fire_ended()

    assert queued.status is PlaybackStatus.IDLE
