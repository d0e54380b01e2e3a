"""Storage operations for setlists, songs and setlist entries.

Every mutating function runs inside ``transaction()`` and either commits
completely or leaves the database as it was. Ownership is checked on every
call: a setlist or song that belongs to somebody else is reported exactly
like one that does not exist.
"""

from contextlib import contextmanager
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from config import NAME_MAX_LENGTH, TITLE_MAX_LENGTH
from errors import DuplicateEntry, NotFound, SetlistError, StorageError, ValidationError
from logging_config import get_logger
from models import db, Setlist, SetlistSong, Song
from ordering import append_order, close_gap, insert_at, orders_for, validate_sequence

log = get_logger("store")


@contextmanager
def transaction():
    """Run a block as one atomic unit of work.

    Commits on success. Any exception rolls back; domain errors are re-raised
    as-is and database errors surface as ``StorageError``.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except SetlistError as exc:
        session.rollback()
        log.warning("Rejected (%s): %s", exc.kind, exc.message)
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("Transaction rolled back: %s", exc)
        raise StorageError("The change could not be saved; nothing was modified") from exc
    except Exception:
        session.rollback()
        raise


def _clean_text(value, field: str, max_length: Optional[int] = None) -> str:
    label = field.capitalize()
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required", field=field)
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(
            f"{label} must be between 1 and {max_length} characters", field=field
        )
    return value


def _owned_setlist(user_id: int, setlist_id: int) -> Setlist:
    setlist = Setlist.query.filter_by(id=setlist_id, user_id=user_id).first()
    if setlist is None:
        raise NotFound("Setlist not found", setlistId=setlist_id)
    return setlist


def _owned_song(user_id: int, song_id: int) -> Song:
    song = Song.query.filter_by(id=song_id, user_id=user_id).first()
    if song is None:
        raise NotFound("Song not found", songId=song_id)
    return song


def _owned_songs(user_id: int, song_ids: Iterable[int]) -> dict[int, Song]:
    song_ids = list(song_ids)
    if not song_ids:
        return {}
    found = {
        s.id: s
        for s in Song.query.filter(Song.user_id == user_id, Song.id.in_(song_ids)).all()
    }
    missing = [sid for sid in song_ids if sid not in found]
    if missing:
        raise NotFound("Song not found", songIds=missing)
    return found


# --- Setlists ---

def list_setlists(user_id: int, search: Optional[str] = None,
                  limit: int = 50, offset: int = 0) -> tuple[list[Setlist], int]:
    """Return one page of the user's setlists and the unpaged total."""
    query = Setlist.query.filter(Setlist.user_id == user_id)
    if search:
        query = query.filter(Setlist.name.icontains(search, autoescape=True))
    total = query.count()
    rows = (query
            .order_by(Setlist.updated_at.desc(), Setlist.id.desc())
            .offset(offset)
            .limit(limit)
            .all())
    return rows, total


def get_setlist(user_id: int, setlist_id: int) -> Setlist:
    return _owned_setlist(user_id, setlist_id)


def create_setlist(user_id: int, name) -> Setlist:
    name = _clean_text(name, "name", NAME_MAX_LENGTH)
    with transaction() as session:
        setlist = Setlist(name=name, user_id=user_id)
        session.add(setlist)
    log.info("Created setlist %s %r", setlist.id, name)
    return setlist


def update_setlist(user_id: int, setlist_id: int, name) -> Setlist:
    name = _clean_text(name, "name", NAME_MAX_LENGTH)
    with transaction():
        setlist = _owned_setlist(user_id, setlist_id)
        setlist.name = name
        setlist.touch()
    log.info("Renamed setlist %s to %r", setlist_id, name)
    return setlist


def delete_setlist(user_id: int, setlist_id: int) -> None:
    """Delete a setlist; its entries go with it."""
    with transaction() as session:
        setlist = _owned_setlist(user_id, setlist_id)
        session.delete(setlist)
    log.info("Deleted setlist %s", setlist_id)


# --- Setlist entries ---

def add_song(user_id: int, setlist_id: int, song_id: int,
             position: Optional[int] = None) -> SetlistSong:
    """Add a song to a setlist.

    Without ``position`` the song goes to the end. With one, entries at or
    after it move down to make room.

    Raises:
        NotFound: setlist or song missing or not owned by ``user_id``
        DuplicateEntry: the song is already in the setlist
        InvalidPosition: ``position`` outside ``1..n+1``
    """
    with transaction():
        setlist = _owned_setlist(user_id, setlist_id)
        song = _owned_song(user_id, song_id)
        entries = list(setlist.entries)
        if any(e.song_id == song.id for e in entries):
            raise DuplicateEntry(
                "Song is already in this setlist", setlistId=setlist_id, songId=song_id
            )

        if position is None:
            order = append_order(entries)
        else:
            order = insert_at(entries, position)

        entry = SetlistSong(song=song, order=order)
        setlist.entries.append(entry)
        setlist.touch()
    log.info("Added song %s to setlist %s at order %s", song_id, setlist_id, order)
    return entry


def remove_song(user_id: int, setlist_id: int, song_id: int) -> None:
    """Remove a song from a setlist and close the gap it leaves."""
    with transaction():
        setlist = _owned_setlist(user_id, setlist_id)
        entry = next((e for e in setlist.entries if e.song_id == song_id), None)
        if entry is None:
            raise NotFound("Song not found in setlist", setlistId=setlist_id, songId=song_id)

        removed_order = entry.order
        setlist.entries.remove(entry)
        close_gap(setlist.entries, removed_order)
        setlist.touch()
    log.info("Removed song %s from setlist %s (was order %s)", song_id, setlist_id, removed_order)


def replace_entries(user_id: int, setlist_id: int,
                    pairs: Iterable[tuple[int, int]]) -> list[SetlistSong]:
    """Swap a setlist's entries for ``(song_id, order)`` pairs in one go.

    The old rows are deleted and new ones created inside the same
    transaction, so no reader ever sees the setlist empty and a failure part
    way through leaves the previous entries in place. The new membership
    does not have to match the old one.

    Raises:
        ValidationError: an order is not a positive integer
        InvalidOrderSequence: duplicate songs, or orders that are not 1..n
        NotFound: setlist or any song missing or not owned
    """
    with transaction() as session:
        ordered = validate_sequence(pairs)
        setlist = _owned_setlist(user_id, setlist_id)
        songs = _owned_songs(user_id, [song_id for song_id, _ in ordered])

        setlist.entries.clear()
        session.flush()

        for song_id, order in ordered:
            setlist.entries.append(SetlistSong(song=songs[song_id], order=order))
        setlist.touch()
        entries = list(setlist.entries)
    log.info("Replaced entries of setlist %s with %s songs", setlist_id, len(entries))
    return entries


def bulk_reorder(user_id: int, setlist_id: int, song_ids: Sequence[int]) -> list[SetlistSong]:
    """Make ``song_ids`` the setlist's exact contents, in that order."""
    return replace_entries(user_id, setlist_id, orders_for(song_ids))


def entry_orders(setlist_id: int) -> list[tuple[int, int]]:
    """``(song_id, order)`` for a setlist, by order. Bypasses ownership."""
    rows = (SetlistSong.query
            .filter_by(setlist_id=setlist_id)
            .order_by(SetlistSong.order.asc())
            .all())
    return [(r.song_id, r.order) for r in rows]


# --- Songs ---

def list_songs(user_id: int) -> list[Song]:
    return (Song.query
            .filter(Song.user_id == user_id)
            .order_by(Song.updated_at.desc(), Song.id.desc())
            .all())


def get_song(user_id: int, song_id: int) -> Song:
    return _owned_song(user_id, song_id)


def create_song(user_id: int, title, lyrics) -> Song:
    title = _clean_text(title, "title", TITLE_MAX_LENGTH)
    lyrics = _clean_text(lyrics, "lyrics")
    with transaction() as session:
        song = Song(title=title, lyrics=lyrics, user_id=user_id)
        session.add(song)
    log.info("Created song %s %r", song.id, title)
    return song


def update_song(user_id: int, song_id: int, title, lyrics) -> Song:
    title = _clean_text(title, "title", TITLE_MAX_LENGTH)
    lyrics = _clean_text(lyrics, "lyrics")
    with transaction():
        song = _owned_song(user_id, song_id)
        song.title = title
        song.lyrics = lyrics
    log.info("Updated song %s", song_id)
    return song


def delete_song(user_id: int, song_id: int) -> list[int]:
    """Delete a song and pull it out of every setlist that holds it.

    Each affected setlist has its order gap closed and its ``updated_at``
    bumped. Returns the ids of those setlists.
    """
    with transaction() as session:
        song = _owned_song(user_id, song_id)
        links = SetlistSong.query.filter_by(song_id=song.id).all()
        touched = []
        for link in links:
            setlist = link.setlist
            setlist.entries.remove(link)
            close_gap(setlist.entries, link.order)
            setlist.touch()
            touched.append(setlist.id)
        session.flush()
        session.expire(song, ["setlist_links"])
        session.delete(song)
    log.info("Deleted song %s (removed from setlists %s)", song_id, touched)
    return touched
