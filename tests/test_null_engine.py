import asyncio
from pathlib import Path

import httpx
import pytest

from neteasetui.messages import (
    CacheCleared,
    ClearCache,
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
from neteasetui.null_engine import AudioSettings, NullEngine, spawn_null_engine
from neteasetui.transfer import CacheCleared as TransferCacheCleared
from neteasetui.transfer import (
    CacheKey,
    ClearAll,
    EnsureCached,
    Priority,
    PurgeNotBr,
    Ready,
    TransferConfig,
)


def _engine():
    events = asyncio.Queue()
    commands = asyncio.Queue()
    transfer_commands = asyncio.Queue()
    transfer_events = asyncio.Queue()
    engine = NullEngine(events, commands, transfer_commands, transfer_events, AudioSettings())
    return engine, events, commands, transfer_commands, transfer_events


def _drain(queue):
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


def test_audio_settings_default_crossfade():
    assert AudioSettings().crossfade_ms == 300


@pytest.mark.asyncio
async def test_play_track_reports_now_playing():
    engine, events, *_ = _engine()
    await engine.handle_command(
        PlayTrack(id=123, br=320000, url="http://example.com/audio.mp3", title="Test Song")
    )
    evt = events.get_nowait()
    assert evt == NowPlaying(song_id=123, play_id=1, title="Test Song", duration_ms=None)
    assert engine.paused is False


@pytest.mark.asyncio
async def test_play_ids_increase_per_track():
    engine, events, *_ = _engine()
    for song_id in (5, 6):
        await engine.handle_command(
            PlayTrack(id=song_id, br=320000, url="http://example.com/a.mp3", title="t")
        )
    first, second = _drain(events)
    assert second.play_id == first.play_id + 1
    assert engine.play_id == second.play_id


@pytest.mark.asyncio
async def test_play_track_clears_pause():
    engine, events, *_ = _engine()
    await engine.handle_command(TogglePause())
    await engine.handle_command(
        PlayTrack(id=1, br=320000, url="http://example.com/a.mp3", title="t")
    )
    assert engine.paused is False
    assert _drain(events)[0] == Paused(True)


@pytest.mark.asyncio
async def test_toggle_pause_flips_and_reports():
    engine, events, *_ = _engine()
    await engine.handle_command(TogglePause())
    await engine.handle_command(TogglePause())
    assert _drain(events) == [Paused(True), Paused(False)]
    assert engine.paused is False


@pytest.mark.asyncio
async def test_stop_reports_stopped_and_unpauses():
    engine, events, *_ = _engine()
    await engine.handle_command(TogglePause())
    await engine.handle_command(Stop())
    assert _drain(events) == [Paused(True), Stopped()]
    assert engine.paused is False


@pytest.mark.asyncio
async def test_ignored_commands_produce_nothing():
    engine, events, _, transfer_commands, _ = _engine()
    for cmd in (SeekToMs(60000), SetVolume(0.8), SetCrossfadeMs(300)):
        await engine.handle_command(cmd)
    assert events.empty()
    assert transfer_commands.empty()


@pytest.mark.asyncio
async def test_cache_commands_forwarded_to_transfer():
    engine, events, _, transfer_commands, _ = _engine()
    await engine.handle_command(ClearCache())
    await engine.handle_command(SetCacheBr(320000))
    await engine.handle_command(
        PrefetchAudio(id=456, br=320000, url="http://example.com/audio2.mp3", title="Test Song 2")
    )
    assert _drain(transfer_commands) == [
        ClearAll(keep=None),
        PurgeNotBr(br=320000, keep=None),
        EnsureCached(
            token=0,
            key=CacheKey(song_id=456, br=320000),
            url="http://example.com/audio2.mp3",
            title="Test Song 2",
            priority=Priority.LOW,
        ),
    ]
    assert events.empty()


@pytest.mark.asyncio
async def test_unknown_command_raises():
    engine, *_ = _engine()
    with pytest.raises(TypeError):
        await engine.handle_command("bogus")


@pytest.mark.asyncio
async def test_run_processes_commands_then_closes_transfer():
    engine, events, commands, transfer_commands, _ = _engine()
    await commands.put(TogglePause())
    await commands.put(Stop())
    await commands.put(None)
    await asyncio.wait_for(engine.run(), timeout=5)
    assert _drain(events) == [Paused(True), Stopped()]
    assert _drain(transfer_commands) == [None]


@pytest.mark.asyncio
async def test_run_forwards_cache_cleared_and_ignores_other_transfer_events():
    engine, events, commands, _, transfer_events = _engine()
    await transfer_events.put(Ready(token=7, key=CacheKey(1, 320000), path=Path("x.bin")))
    await transfer_events.put(TransferCacheCleared(files=10, bytes=1024 * 1024))
    task = asyncio.create_task(engine.run())
    evt = await asyncio.wait_for(events.get(), timeout=5)
    await commands.put(None)
    await asyncio.wait_for(task, timeout=5)
    assert evt == CacheCleared(files=10, bytes=1024 * 1024)
    assert events.empty()


@pytest.mark.asyncio
async def test_run_stops_when_transfer_events_close():
    engine, _, _, transfer_commands, transfer_events = _engine()
    await transfer_events.put(None)
    await asyncio.wait_for(engine.run(), timeout=5)
    assert _drain(transfer_commands) == [None]


@pytest.mark.asyncio
async def test_spawn_clear_cache_round_trip(tmp_path):
    commands = asyncio.Queue()
    events = asyncio.Queue()
    config = TransferConfig(download_concurrency=1)
    task = spawn_null_engine(commands, events, tmp_path, config, AudioSettings())
    await commands.put(ClearCache())
    evt = await asyncio.wait_for(events.get(), timeout=5)
    await commands.put(None)
    await asyncio.wait_for(task, timeout=5)
    assert evt == CacheCleared(files=0, bytes=0)
    assert (tmp_path / "audio_cache" / "index.json").exists()


@pytest.mark.asyncio
async def test_spawn_prefetch_downloads_into_cache(tmp_path):
    body = b"fake audio bytes"
    requested = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, content=body)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    commands = asyncio.Queue()
    events = asyncio.Queue()
    config = TransferConfig(download_concurrency=1, download_retries=0)
    task = spawn_null_engine(commands, events, tmp_path, config, AudioSettings(), client)
    await commands.put(
        PrefetchAudio(id=456, br=320000, url="http://example.com/audio2.mp3", title="Test Song 2")
    )
    await commands.put(None)
    await asyncio.wait_for(task, timeout=5)
    await client.aclose()
    cached = tmp_path / "audio_cache" / "456_320000.bin"
    assert cached.read_bytes() == body
    assert requested == ["http://example.com/audio2.mp3"]
    assert events.empty()