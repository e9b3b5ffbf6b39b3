# neteasetui

The core of a terminal music player. It provides:

- `neteasetui.parsers`: `Song`, `Playlist`, and parsers for search results
  and user playlists
- `neteasetui.play_queue`: the playback queue (`PlayQueue`) and its four
  modes (`PlayMode`): sequential, list loop, single loop and shuffle
- `neteasetui.state`: the application state (`App`), the tab layout
  (`tab_configs`, `tab_index_for_view`), and the read-only snapshots a UI
  draws from (`AppSnapshot.from_app`)
- `neteasetui.messages`: the commands an audio engine accepts and the events
  it reports
- `neteasetui.download`: streaming downloads with retries and exponential
  backoff (`download_to_path`)
- `neteasetui.cache`: an on-disk audio cache with a size limit. The least
  recently used files are evicted first.
- `neteasetui.fade`: a pausable volume crossfade between two sinks
- `neteasetui.transfer`: an asyncio actor that downloads audio into the cache.
  Jobs run by priority with bounded concurrency, and requests for the same
  track share one download.
- `neteasetui.null_engine`: an audio engine that answers playback commands
  with events and produces no sound

## Parsing API responses

```python
from neteasetui.parsers import parse_search_songs, parse_user_playlists

songs = parse_search_songs({
    "result": {"songs": [
        {"id": 1, "name": "Intro", "ar": [{"name": "A"}, {"name": "B"}]},
    ]}
})
print(songs[0].name, songs[0].artists)   # Intro A/B

playlists = parse_user_playlists({
    "playlist": [{"id": 7, "name": "Liked", "trackCount": 12, "specialType": 5}]
})
print(playlists[0].track_count)          # 12
```

`parse_search_songs` accepts both `{"result": {"songs": [...]}}` and
`{"songs": [...]}`. Artists are read from `ar` or from `artists`. Entries
without an integer `id` or a string `name` are skipped. A payload that is not
in the expected shape gives an empty list.

## The play queue

```python
from neteasetui.play_queue import PlayMode, PlayQueue

queue = PlayQueue(PlayMode.LIST_LOOP)
queue.set_songs(songs, 0)
print(queue.current)              # the song under the cursor
queue.next_index()                # moves on and wraps at the end
queue.prev_index()
queue.set_mode(PlayMode.SHUFFLE)  # reshuffles and keeps the current song
```

- **Sequential** stops after the last song: `next_index()` returns `None`
  there and clears the cursor. `prev_index()` stays on the first song.
- **List loop** and **shuffle** wrap around at both ends.
- **Single loop** keeps returning the current song.

`peek_next_index()` returns what `next_index()` would return without moving
the cursor. `ordered_songs()` lists the songs in play order.

## The audio cache

```python
from pathlib import Path
from neteasetui.cache import AudioCache

with AudioCache(Path("~/.local/share/player").expanduser(), 2048) as cache:
    path = cache.lookup_path(123, 320_000)   # None on a miss
    if path is None:
        ...  # download to a temporary file, then:
        # cache.commit_tmp_file(123, 320_000, tmp_file)
```

Files are stored as `<song_id>_<br>.bin` under `audio_cache/` in the data
directory. Their sizes and last access times are kept in `index.json`. An
index from another version causes the directory to be emptied. When the
cache is closed, any pending index changes are written out.

If the cache directory cannot be created, lookups miss and
`commit_tmp_file` raises `CacheError`. `purge_not_br` and
`purge_song_other_brs` remove files of other bitrates, and `clear_all`
removes everything except an optional file to keep.

## Transfer configuration

`TransferConfig.from_env()` reads these environment variables. Any variable
that is unset or cannot be parsed falls back to its default.

| Variable | Default |
| --- | --- |
| `NETEASE_AUDIO_HTTP_TIMEOUT_SECS` | 30 |
| `NETEASE_AUDIO_HTTP_CONNECT_TIMEOUT_SECS` | 10 |
| `NETEASE_AUDIO_DOWNLOAD_CONCURRENCY` | number of CPUs |
| `NETEASE_AUDIO_DOWNLOAD_RETRIES` | 2 |
| `NETEASE_AUDIO_DOWNLOAD_RETRY_BACKOFF_MS` | 250 |
| `NETEASE_AUDIO_DOWNLOAD_RETRY_BACKOFF_MAX_MS` | 2000 |
| `NETEASE_AUDIO_CACHE_MAX_MB` | 2048 |

## Running the transfer actor and the null engine

`spawn_transfer_actor(data_dir, config, client)` starts a `TransferActor` on
the running asyncio loop. It returns the command queue, the event queue and
the actor's task. The actor accepts `EnsureCached`, `Cancel`, `Invalidate`,
`ClearAll` and `PurgeNotBr`, and reports `Ready`, `TransferError` and
`CacheCleared`. A token of 0 in `EnsureCached` asks for no reply. Putting
`None` on the command queue shuts the actor down once running downloads have
finished.

`spawn_null_engine(commands, events, data_dir, ...)` starts a transfer actor
and a `NullEngine` connected to it. The engine accepts every audio command
(`PlayTrack`, `TogglePause`, `Stop`, `SeekToMs`, `SetVolume`,
`SetCrossfadeMs`, `ClearCache`, `SetCacheBr`, `PrefetchAudio`). It answers
with `NowPlaying`, `Paused`, `Stopped` and `CacheCleared`. Seek, volume and
crossfade commands are ignored. Putting `None` on the command queue stops
the engine, and the engine then stops the transfer actor as well.

## What this package does not do

- It produces no sound. The only engine it has is `NullEngine`, and
  `Crossfade` works with any object that has `set_volume`, `play`, `pause`
  and `stop` methods.
- It has no user interface and no command to run. `AppSnapshot` holds what a
  UI would draw, but nothing here draws it.
- It does not talk to a music service. It does not log in, search or fetch
  song URLs. The parsers take responses you have already fetched.
- It does not load or save user settings.