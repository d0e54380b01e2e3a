"""Client-side mirror of the user's songs and setlists.

Pure reducer: ``reduce(state, action) -> new state``. The input state is
never modified, so a listener holding an old ``ClientState`` keeps a
consistent snapshot. ``ClientStore`` holds the current state and tells
subscribers whenever it changes.

The mirror is only written after the server confirms a change (see
``client.service``), so there is never anything to roll back.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence

from reconciler import song_identity

LOADED = "loaded"
SONG_SAVED = "song_saved"
SONG_DELETED = "song_deleted"
SETLIST_SAVED = "setlist_saved"
SETLIST_DELETED = "setlist_deleted"
SONG_ADDED = "song_added"
SONG_REMOVED = "song_removed"
SONGS_REORDERED = "songs_reordered"
ERROR_SET = "error_set"
ERROR_CLEARED = "error_cleared"


@dataclass(frozen=True)
class Action:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ClientState:
    """Snapshot of everything the UI shows.

    Attributes:
        songs: The user's song library
        setlists: Setlist dicts, each with an ordered ``songs`` list
        error: User-visible message from the last failed call
    """

    songs: tuple = ()
    setlists: tuple = ()
    error: Optional[str] = None

    def get_setlist(self, setlist_id: Hashable) -> Optional[dict]:
        return next((s for s in self.setlists if s["id"] == setlist_id), None)

    def song_ids(self, setlist_id: Hashable) -> List[Hashable]:
        setlist = self.get_setlist(setlist_id)
        if setlist is None:
            return []
        return [song_identity(s) for s in setlist["songs"]]


def _normalize_setlist(setlist: dict) -> dict:
    return {**setlist, "songs": list(setlist.get("songs") or [])}


def _map_setlist(state: ClientState, setlist_id: Hashable,
                 fn: Callable[[dict], dict]) -> ClientState:
    if state.get_setlist(setlist_id) is None:
        return state
    setlists = tuple(fn(s) if s["id"] == setlist_id else s for s in state.setlists)
    return replace(state, setlists=setlists)


def loaded(state: ClientState, songs: Sequence[dict], setlists: Sequence[dict]) -> ClientState:
    return replace(
        state,
        songs=tuple(songs),
        setlists=tuple(_normalize_setlist(s) for s in setlists),
    )


def song_saved(state: ClientState, song: dict) -> ClientState:
    """Insert or replace a library song; setlist rows keep their own copies."""
    sid = song_identity(song)
    if any(song_identity(s) == sid for s in state.songs):
        songs = tuple(song if song_identity(s) == sid else s for s in state.songs)
    else:
        songs = state.songs + (song,)
    return replace(state, songs=songs)


def song_deleted(state: ClientState, song_id: Hashable) -> ClientState:
    """Drop a song from the library and from every setlist."""
    songs = tuple(s for s in state.songs if song_identity(s) != song_id)
    setlists = tuple(
        {**sl, "songs": [s for s in sl["songs"] if song_identity(s) != song_id]}
        for sl in state.setlists
    )
    return replace(state, songs=songs, setlists=setlists)


def setlist_saved(state: ClientState, setlist: dict) -> ClientState:
    """Add a new setlist, or update one while keeping its mirrored songs."""
    existing = state.get_setlist(setlist["id"])
    if existing is None:
        return replace(state, setlists=state.setlists + (_normalize_setlist(setlist),))
    return _map_setlist(state, setlist["id"],
                        lambda sl: {**sl, **setlist, "songs": list(sl["songs"])})


def setlist_deleted(state: ClientState, setlist_id: Hashable) -> ClientState:
    return replace(state, setlists=tuple(s for s in state.setlists if s["id"] != setlist_id))


def song_added(state: ClientState, setlist_id: Hashable, song: Any,
               position: Optional[int] = None) -> ClientState:
    """Place a song in a setlist unless it is already there.

    ``position`` is the server-confirmed 1-based slot; without it the song
    is appended.
    """
    sid = song_identity(song)

    def add(sl: dict) -> dict:
        songs = list(sl["songs"])
        if any(song_identity(s) == sid for s in songs):
            return sl
        if position is None:
            songs.append(song)
        else:
            songs.insert(position - 1, song)
        return {**sl, "songs": songs}

    return _map_setlist(state, setlist_id, add)


def song_removed(state: ClientState, setlist_id: Hashable, song_id: Hashable) -> ClientState:
    return _map_setlist(
        state, setlist_id,
        lambda sl: {**sl, "songs": [s for s in sl["songs"] if song_identity(s) != song_id]},
    )


def songs_reordered(state: ClientState, setlist_id: Hashable, songs: Sequence) -> ClientState:
    return _map_setlist(state, setlist_id, lambda sl: {**sl, "songs": list(songs)})


def error_set(state: ClientState, message: str) -> ClientState:
    return replace(state, error=message)


def error_cleared(state: ClientState) -> ClientState:
    return replace(state, error=None)


_HANDLERS: Dict[str, Callable[..., ClientState]] = {
    LOADED: loaded,
    SONG_SAVED: song_saved,
    SONG_DELETED: song_deleted,
    SETLIST_SAVED: setlist_saved,
    SETLIST_DELETED: setlist_deleted,
    SONG_ADDED: song_added,
    SONG_REMOVED: song_removed,
    SONGS_REORDERED: songs_reordered,
    ERROR_SET: error_set,
    ERROR_CLEARED: error_cleared,
}


def reduce(state: ClientState, action: Action) -> ClientState:
    """Apply one action and return the new state."""
    handler = _HANDLERS.get(action.type)
    if handler is None:
        raise ValueError(f"Unknown action type: {action.type}")
    return handler(state, **action.payload)


class ClientStore:
    """Holds the current ``ClientState`` and notifies subscribers on change."""

    def __init__(self, state: Optional[ClientState] = None):
        self._state = state or ClientState()
        self._listeners: List[Callable[[ClientState], None]] = []

    @property
    def state(self) -> ClientState:
        return self._state

    def dispatch(self, action: Action) -> ClientState:
        new_state = reduce(self._state, action)
        if new_state is not self._state:
            self._state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self._state

    def subscribe(self, listener: Callable[[ClientState], None]) -> Callable[[], None]:
        """Register ``listener``; call the returned function to unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
