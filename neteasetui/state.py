"""Application state and the snapshots handed to the user interface."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .parsers import Playlist, Song
from .play_queue import PlayMode, PlayQueue

__all__ = [
    "App",
    "AppSnapshot",
    "LoginSnapshot",
    "LyricLine",
    "PlayMode",
    "PlayerSnapshot",
    "Playlist",
    "PlaylistMode",
    "PlaylistPreload",
    "PlaylistsSnapshot",
    "LyricsSnapshot",
    "PreloadCancelled",
    "PreloadCompleted",
    "PreloadFailed",
    "PreloadLoading",
    "PreloadNotStarted",
    "SearchSnapshot",
    "SettingsSnapshot",
    "Song",
    "TabConfig",
    "UiFocus",
    "View",
    "tab_configs",
    "tab_index_for_view",
]

# Lyric lines are opaque to the state layer; it only stores and copies them.
LyricLine = object


class View(Enum):
    LOGIN = "Login"
    PLAYLISTS = "Playlists"
    SEARCH = "Search"
    LYRICS = "Lyrics"
    SETTINGS = "Settings"


class UiFocus(Enum):
    HEADER_SEARCH = "HeaderSearch"
    BODY_LEFT = "BodyLeft"
    BODY_CENTER = "BodyCenter"
    BODY_RIGHT = "BodyRight"


@dataclass(frozen=True)
class TabConfig:
    """A tab title and the view it opens."""

    title: str
    view: View


_LOGGED_IN_TABS = (
    TabConfig("歌单", View.PLAYLISTS),
    TabConfig("搜索", View.SEARCH),
    TabConfig("歌词", View.LYRICS),
    TabConfig("设置", View.SETTINGS),
)

_LOGGED_OUT_TABS = (
    TabConfig("登录", View.LOGIN),
    TabConfig("搜索", View.SEARCH),
    TabConfig("歌词", View.LYRICS),
    TabConfig("设置", View.SETTINGS),
)


def tab_configs(logged_in: bool) -> tuple[TabConfig, ...]:
    """Tabs shown for the given login state."""
    return _LOGGED_IN_TABS if logged_in else _LOGGED_OUT_TABS


def tab_index_for_view(view: View, logged_in: bool) -> int | None:
    """Position of ``view`` among the tabs, or None if it has no tab."""
    for pos, config in enumerate(tab_configs(logged_in)):
        if config.view == view:
            return pos
    return None


class PlaylistMode(Enum):
    LIST = "List"
    TRACKS = "Tracks"


@dataclass(frozen=True)
class PreloadNotStarted:
    pass


@dataclass(frozen=True)
class PreloadLoading:
    loaded: int
    total: int


@dataclass(frozen=True)
class PreloadCompleted:
    pass


@dataclass(frozen=True)
class PreloadFailed:
    message: str


@dataclass(frozen=True)
class PreloadCancelled:
    pass


PreloadStatus = Union[
    PreloadNotStarted, PreloadLoading, PreloadCompleted, PreloadFailed, PreloadCancelled
]


@dataclass
class PlaylistPreload:
    status: PreloadStatus
    songs: list[Song] = field(default_factory=list)


@dataclass
class App:
    """Mutable application state owned by the core loop."""

    view: View = View.LOGIN
    ui_focus: UiFocus = UiFocus.BODY_CENTER
    help_visible: bool = False

    login_qr_url: str | None = None
    login_qr_ascii: str | None = None
    login_unikey: str | None = None
    login_status: str = "按 l 生成二维码；q 退出；Ctrl+Tab 切换页面"
    logged_in: bool = False
    login_cookie_input: str = ""
    login_cookie_input_visible: bool = False

    search_input: str = ""
    search_results: list[Song] = field(default_factory=list)
    search_selected: int = 0
    search_status: str = "输入关键词，回车搜索"

    now_playing: str | None = None
    play_status: str = "未播放"
    paused: bool = False
    play_started_at: float | None = None
    play_total_ms: int | None = None
    play_paused_at: float | None = None
    play_paused_accum_ms: int = 0
    pending_seek_ms: int | None = None
    play_id: int | None = None
    play_queue: PlayQueue = field(default_factory=lambda: PlayQueue(PlayMode.LIST_LOOP))
    play_mode: PlayMode = PlayMode.LIST_LOOP
    volume: float = 1.0
    play_song_id: int | None = None
    play_error_count: int = 0
    play_br: int = 999_000
    crossfade_ms: int = 300

    account_uid: int | None = None
    account_nickname: str | None = None
    playlists: list[Playlist] = field(default_factory=list)
    playlists_selected: int = 0
    playlist_mode: PlaylistMode = PlaylistMode.LIST
    playlist_tracks: list[Song] = field(default_factory=list)
    playlist_tracks_selected: int = 0
    playlists_status: str = "等待登录后加载歌单"

    playlist_preloads: dict[int, PlaylistPreload] = field(default_factory=dict)
    preload_summary: str = ""

    lyrics_song_id: int | None = None
    lyrics: list[LyricLine] = field(default_factory=list)
    lyrics_status: str = "暂无歌词"
    lyrics_follow: bool = True
    lyrics_selected: int = 0
    lyrics_offset_ms: int = 0

    settings_selected: int = 0
    settings_group_selected: int = 0
    settings_status: str = "←→ 调整 | Enter 操作 | Ctrl+Tab 切换"


@dataclass(frozen=True)
class PlayerSnapshot:
    now_playing: str | None
    play_status: str
    paused: bool
    play_started_at: float | None
    play_total_ms: int | None
    play_paused_at: float | None
    play_paused_accum_ms: int
    play_mode: PlayMode
    volume: float
    play_br: int


@dataclass(frozen=True)
class LoginSnapshot:
    login_qr_url: str | None
    login_qr_ascii: str | None
    login_status: str
    login_cookie_input: str
    login_cookie_input_visible: bool


@dataclass(frozen=True)
class SearchSnapshot:
    search_results: list[Song]
    search_selected: int
    search_status: str


@dataclass(frozen=True)
class PlaylistsSnapshot:
    playlist_mode: PlaylistMode
    playlists: list[Playlist]
    playlists_selected: int
    playlist_tracks: list[Song]
    playlist_tracks_selected: int
    playlists_status: str


@dataclass(frozen=True)
class LyricsSnapshot:
    lyrics: list[LyricLine]
    lyrics_status: str
    lyrics_follow: bool
    lyrics_selected: int
    lyrics_offset_ms: int


@dataclass(frozen=True)
class SettingsSnapshot:
    settings_selected: int
    settings_group_selected: int
    settings_status: str
    lyrics_offset_ms: int
    crossfade_ms: int


AppViewSnapshot = Union[
    LoginSnapshot, PlaylistsSnapshot, SearchSnapshot, LyricsSnapshot, SettingsSnapshot
]


def _view_snapshot(app: App) -> AppViewSnapshot:
    if app.view is View.LOGIN:
        return LoginSnapshot(
            login_qr_url=app.login_qr_url,
            login_qr_ascii=app.login_qr_ascii,
            login_status=app.login_status,
            login_cookie_input=app.login_cookie_input,
            login_cookie_input_visible=app.login_cookie_input_visible,
        )
    if app.view is View.PLAYLISTS:
        tracks = (
            list(app.playlist_tracks) if app.playlist_mode is PlaylistMode.TRACKS else []
        )
        return PlaylistsSnapshot(
            playlist_mode=app.playlist_mode,
            playlists=list(app.playlists),
            playlists_selected=app.playlists_selected,
            playlist_tracks=tracks,
            playlist_tracks_selected=app.playlist_tracks_selected,
            playlists_status=app.playlists_status,
        )
    if app.view is View.SEARCH:
        return SearchSnapshot(
            search_results=list(app.search_results),
            search_selected=app.search_selected,
            search_status=app.search_status,
        )
    if app.view is View.LYRICS:
        return LyricsSnapshot(
            lyrics=list(app.lyrics),
            lyrics_status=app.lyrics_status,
            lyrics_follow=app.lyrics_follow,
            lyrics_selected=app.lyrics_selected,
            lyrics_offset_ms=app.lyrics_offset_ms,
        )
    return SettingsSnapshot(
        settings_selected=app.settings_selected,
        settings_group_selected=app.settings_group_selected,
        settings_status=app.settings_status,
        lyrics_offset_ms=app.lyrics_offset_ms,
        crossfade_ms=app.crossfade_ms,
    )


@dataclass(frozen=True)
class AppSnapshot:
    """An independent copy of what the interface needs to draw one frame."""

    view: View
    logged_in: bool
    ui_focus: UiFocus
    help_visible: bool
    search_input: str
    player: PlayerSnapshot
    queue: list[Song]
    queue_pos: int | None
    view_state: AppViewSnapshot

    @classmethod
    def from_app(cls, app: App) -> AppSnapshot:
        """Copy the parts of ``app`` relevant to its current view."""
        player = PlayerSnapshot(
            now_playing=app.now_playing,
            play_status=app.play_status,
            paused=app.paused,
            play_started_at=app.play_started_at,
            play_total_ms=app.play_total_ms,
            play_paused_at=app.play_paused_at,
            play_paused_accum_ms=app.play_paused_accum_ms,
            play_mode=app.play_mode,
            volume=app.volume,
            play_br=app.play_br,
        )
        return cls(
            view=app.view,
            logged_in=app.logged_in,
            ui_focus=app.ui_focus,
            help_visible=app.help_visible,
            search_input=app.search_input,
            player=player,
            queue=app.play_queue.ordered_songs(),
            queue_pos=app.play_queue.cursor_pos,
            view_state=_view_snapshot(app),
        )