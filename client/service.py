"""Keeps the client mirror in step with the server without re-fetching.

Each operation calls the API first and only touches the mirror once the
server has said yes. A failed call leaves the mirror exactly as it was,
stores a user-visible message in ``state.error`` and re-raises.
"""

from typing import Any, Hashable, Optional, Sequence

from client.api import SetlistApi, SetlistApiError
from client.state import (
    Action,
    ClientState,
    ClientStore,
    ERROR_CLEARED,
    ERROR_SET,
    LOADED,
    SETLIST_DELETED,
    SETLIST_SAVED,
    SONG_ADDED,
    SONG_DELETED,
    SONG_REMOVED,
    SONG_SAVED,
    SONGS_REORDERED,
)
from logging_config import get_logger
from reconciler import (
    AddCommand,
    ReconcilePlan,
    RemoveCommand,
    ReorderCommand,
    reconcile,
    song_identity,
)

log = get_logger("client.service")


class SetlistService:
    """Client-side entry point for song and setlist edits.

    Attributes:
        api: HTTP client used for every server call
        store: Container holding the mirrored state
    """

    def __init__(self, api: SetlistApi, store: Optional[ClientStore] = None):
        self.api = api
        self.store = store or ClientStore()

    @property
    def state(self) -> ClientState:
        return self.store.state

    def _dispatch(self, action_type: str, **payload: Any) -> ClientState:
        log.debug("dispatch %s %s", action_type, payload.get("setlist_id", ""))
        return self.store.dispatch(Action(action_type, payload))

    def _fail(self, message: str, exc: SetlistApiError) -> None:
        log.warning("%s: %s", message, exc.message)
        self._dispatch(ERROR_SET, message=f"{message}. {exc.message}")

    def clear_error(self) -> None:
        self._dispatch(ERROR_CLEARED)

    def load(self) -> ClientState:
        """Fetch songs and setlists and replace the mirror with them."""
        try:
            songs = self.api.list_songs()
            setlists = self.api.list_setlists()["setlists"]
        except SetlistApiError as exc:
            self._fail("Failed to load your data", exc)
            raise
        return self._dispatch(LOADED, songs=songs, setlists=setlists)

    # Songs

    def save_song(self, title: str, lyrics: str, song_id: Optional[int] = None) -> dict:
        """Create a song, or update it when ``song_id`` is already mirrored."""
        known = song_id is not None and any(song_identity(s) == song_id for s in self.state.songs)
        try:
            if known:
                song = self.api.update_song(song_id, title, lyrics)
            else:
                song = self.api.create_song(title, lyrics)
        except SetlistApiError as exc:
            self._fail("Failed to save song", exc)
            raise
        self._dispatch(SONG_SAVED, song=song)
        return song

    def delete_song(self, song_id: Hashable) -> None:
        try:
            self.api.delete_song(song_id)
        except SetlistApiError as exc:
            self._fail("Failed to delete song", exc)
            raise
        self._dispatch(SONG_DELETED, song_id=song_id)

    # Setlists

    def save_setlist(self, name: str, setlist_id: Optional[int] = None) -> dict:
        """Create a setlist, or rename a mirrored one keeping its songs."""
        known = setlist_id is not None and self.state.get_setlist(setlist_id) is not None
        try:
            if known:
                setlist = self.api.update_setlist(setlist_id, name)
            else:
                setlist = self.api.create_setlist(name)
        except SetlistApiError as exc:
            self._fail("Failed to save setlist", exc)
            raise
        self._dispatch(SETLIST_SAVED, setlist=setlist)
        return self.state.get_setlist(setlist["id"])

    def delete_setlist(self, setlist_id: Hashable) -> None:
        try:
            self.api.delete_setlist(setlist_id)
        except SetlistApiError as exc:
            self._fail("Failed to delete setlist", exc)
            raise
        self._dispatch(SETLIST_DELETED, setlist_id=setlist_id)

    def add_song_to_setlist(self, setlist_id: Hashable, song: Any,
                            position: Optional[int] = None) -> None:
        try:
            self.api.add_song(setlist_id, song_identity(song), position)
        except SetlistApiError as exc:
            self._fail("Failed to add song to setlist", exc)
            raise
        self._dispatch(SONG_ADDED, setlist_id=setlist_id, song=song, position=position)

    def remove_song_from_setlist(self, setlist_id: Hashable, song_id: Hashable) -> None:
        try:
            self.api.remove_song(setlist_id, song_id)
        except SetlistApiError as exc:
            self._fail("Failed to remove song from setlist", exc)
            raise
        self._dispatch(SONG_REMOVED, setlist_id=setlist_id, song_id=song_id)

    def reorder_setlist_songs(self, setlist_id: Hashable, songs: Sequence) -> None:
        try:
            self.api.reorder(setlist_id, [song_identity(s) for s in songs])
        except SetlistApiError as exc:
            self._fail("Failed to reorder songs", exc)
            raise
        self._dispatch(SONGS_REORDERED, setlist_id=setlist_id, songs=list(songs))

    def apply_desired_songs(self, setlist_id: Hashable, desired: Sequence,
                            settle: bool = False) -> ReconcilePlan:
        """Bring a setlist to ``desired`` with as few calls as possible.

        Commands run one at a time; if one fails, the ones before it stay
        applied (server and mirror agree on them) and the error propagates.
        With ``settle`` an add/remove plan that would leave the order off is
        followed by one reorder.
        """
        mirrored = self.state.get_setlist(setlist_id)
        if mirrored is None:
            raise ValueError(f"Setlist {setlist_id} is not loaded")
        plan = reconcile(mirrored["songs"], desired)
        log.debug("setlist %s: %s plan with %d commands", setlist_id, plan.kind, len(plan.commands))

        for command in plan.commands:
            if isinstance(command, ReorderCommand):
                self.reorder_setlist_songs(setlist_id, desired)
            elif isinstance(command, RemoveCommand):
                self.remove_song_from_setlist(setlist_id, command.song_id)
            elif isinstance(command, AddCommand):
                self.add_song_to_setlist(setlist_id, command.song, command.position)

        if settle and not plan.exact:
            self.reorder_setlist_songs(setlist_id, desired)
        return plan
