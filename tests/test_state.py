from neteasetui.parsers import Playlist, Song
from neteasetui.play_queue import PlayMode
from neteasetui.state import (
    App,
    AppSnapshot,
    LoginSnapshot,
    LyricsSnapshot,
    PlaylistMode,
    PlaylistsSnapshot,
    SearchSnapshot,
    SettingsSnapshot,
    View,
    tab_configs,
    tab_index_for_view,
)


def test_tab_titles_depend_on_login():
    assert [t.title for t in tab_configs(True)] == ["歌单", "搜索", "歌词", "设置"]
    assert [t.title for t in tab_configs(False)] == ["登录", "搜索", "歌词", "设置"]


def test_tab_index_for_view():
    assert tab_index_for_view(View.PLAYLISTS, True) == 0
    assert tab_index_for_view(View.PLAYLISTS, False) is None
    assert tab_index_for_view(View.LOGIN, True) is None
    for logged_in in (True, False):
        for pos, config in enumerate(tab_configs(logged_in)):
            assert tab_index_for_view(config.view, logged_in) == pos


def test_app_defaults():
    app = App()
    assert app.view is View.LOGIN
    assert app.play_br == 999_000
    assert app.crossfade_ms == 300
    assert app.volume == 1.0
    assert app.play_mode is PlayMode.LIST_LOOP
    assert app.play_queue.mode is PlayMode.LIST_LOOP
    assert app.play_status == "未播放"
    assert app.lyrics_follow is True


def test_app_instances_do_not_share_lists():
    first = App()
    second = App()
    first.search_results.append(Song(1, "a", "b"))
    assert second.search_results == []
    assert first.play_queue is not second.play_queue


def test_snapshot_login_view():
    app = App(login_qr_url="https://qr.example.com/x", search_input="hello")
    snap = AppSnapshot.from_app(app)
    assert isinstance(snap.view_state, LoginSnapshot)
    assert snap.view_state.login_qr_url == "https://qr.example.com/x"
    assert snap.search_input == "hello"
    assert snap.player.play_br == app.play_br


def test_snapshot_playlists_hides_tracks_in_list_mode():
    tracks = [Song(1, "t", "a")]
    app = App(
        view=View.PLAYLISTS,
        playlists=[Playlist(9, "p", 1, 0)],
        playlist_tracks=tracks,
    )
    snap = AppSnapshot.from_app(app)
    assert isinstance(snap.view_state, PlaylistsSnapshot)
    assert snap.view_state.playlist_tracks == []
    assert snap.view_state.playlists == app.playlists

    app.playlist_mode = PlaylistMode.TRACKS
    snap = AppSnapshot.from_app(app)
    assert snap.view_state.playlist_tracks == tracks


def test_snapshot_is_independent_copy():
    app = App(view=View.SEARCH, search_results=[Song(1, "a", "b")])
    snap = AppSnapshot.from_app(app)
    app.search_results.append(Song(2, "c", "d"))
    assert isinstance(snap.view_state, SearchSnapshot)
    assert snap.view_state.search_results == [Song(1, "a", "b")]


def test_snapshot_lyrics_and_settings():
    app = App(view=View.LYRICS, lyrics_offset_ms=-200)
    lyrics = AppSnapshot.from_app(app).view_state
    assert isinstance(lyrics, LyricsSnapshot)
    assert lyrics.lyrics_offset_ms == -200

    app.view = View.SETTINGS
    app.crossfade_ms = 350
    settings = AppSnapshot.from_app(app).view_state
    assert isinstance(settings, SettingsSnapshot)
    assert settings.crossfade_ms == 350
    assert settings.lyrics_offset_ms == -200


def test_snapshot_queue_follows_play_order():
    app = App()
    songs = [Song(i, f"s{i}", "a") for i in range(4)]
    app.play_queue.set_songs(songs, 2)
    snap = AppSnapshot.from_app(app)
    assert snap.queue == app.play_queue.ordered_songs()
    assert snap.queue_pos == app.play_queue.cursor_pos
    assert snap.queue[snap.queue_pos] == songs[2]