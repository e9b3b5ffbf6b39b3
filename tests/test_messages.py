import dataclasses

import pytest

from neteasetui.messages import (
    AudioError,
    CacheCleared,
    ClearCache,
    Ended,
    NeedsReload,
    NowPlaying,
    Paused,
    PlayTrack,
    PrefetchAudio,
    SeekToMs,
    SetCacheBr,
    SetCrossfadeMs,
    SetVolume,
    Stop,
    Stopped,
    TogglePause,
)


def _describe(event):
    match event:
        case NeedsReload():
            return "reload"
        case Paused(paused=flag):
            return f"paused:{flag}"
        case _:
            return "other"


def test_needs_reload_event_exists():
    event = NeedsReload()
    assert _describe(event) == "reload"
    assert "NeedsReload" in repr(event)


def test_needs_reload_equality():
    assert NeedsReload() == NeedsReload()
    assert NeedsReload() != Stopped()


def test_toggle_pause_command_exists():
    cmd = TogglePause()
    assert cmd == TogglePause()
    assert "TogglePause" in repr(cmd)


def test_audio_event_all_variants():
    events = [
        NowPlaying(song_id=123, play_id=456, title="Test Song", duration_ms=180000),
        Paused(True),
        Paused(False),
        Stopped(),
        Ended(play_id=789),
        CacheCleared(files=10, bytes=1024 * 1024),
        AudioError("Test error"),
        NeedsReload(),
    ]
    assert len(events) == 8

    now = events[0]
    assert now.song_id == 123
    assert now.play_id == 456
    assert now.title == "Test Song"
    assert now.duration_ms == 180000
    assert _describe(events[1]) == "paused:True"
    assert _describe(events[2]) == "paused:False"
    assert events[4].play_id == 789
    assert events[5].files == 10
    assert events[5].bytes == 1024 * 1024
    assert events[6].message == "Test error"
    assert _describe(events[7]) == "reload"


def test_audio_command_all_variants():
    commands = [
        PlayTrack(id=123, br=320000, url="http://example.com/audio.mp3", title="Test Song"),
        TogglePause(),
        Stop(),
        SeekToMs(60000),
        SetVolume(0.8),
        SetCrossfadeMs(300),
        ClearCache(),
        SetCacheBr(320000),
        PrefetchAudio(
            id=456, br=320000, url="http://example.com/audio2.mp3", title="Test Song 2"
        ),
    ]
    assert len(commands) == 9

    play = commands[0]
    assert (play.id, play.br, play.url, play.title) == (
        123,
        320000,
        "http://example.com/audio.mp3",
        "Test Song",
    )
    assert commands[3].ms == 60000
    assert commands[4].volume == 0.8
    assert commands[5].ms == 300
    assert commands[7].br == 320000
    prefetch = commands[8]
    assert (prefetch.id, prefetch.br, prefetch.url, prefetch.title) == (
        456,
        320000,
        "http://example.com/audio2.mp3",
        "Test Song 2",
    )


def test_messages_are_immutable():
    cmd = SeekToMs(100)
    with pytest.raises(dataclasses.FrozenInstanceError):
        cmd.ms = 200  # type: ignore[misc]
    assert cmd.ms == 100
    assert cmd == SeekToMs(100)