"""JSON shapes for API responses (camelCase keys)."""

from models import Setlist, SetlistSong, Song


def _iso(value):
    return value.isoformat() if value else None


def serialize_song(song: Song, *, include_setlists: bool = False) -> dict:
    data = {
        "id": song.id,
        "title": song.title,
        "lyrics": song.lyrics,
        "createdAt": _iso(song.created_at),
        "updatedAt": _iso(song.updated_at),
        "setlistCount": len(song.setlist_links),
    }
    if include_setlists:
        data["setlists"] = [
            {"id": link.setlist.id, "name": link.setlist.name, "order": link.order}
            for link in sorted(song.setlist_links, key=lambda l: l.setlist_id)
        ]
    return data


def serialize_entry(entry: SetlistSong) -> dict:
    """One setlist row: the song plus its position."""
    song = entry.song
    return {
        "id": song.id,
        "title": song.title,
        "lyrics": song.lyrics,
        "order": entry.order,
    }


def serialize_setlist(sl: Setlist) -> dict:
    entries = sorted(sl.entries, key=lambda e: e.order)
    return {
        "id": sl.id,
        "name": sl.name,
        "createdAt": _iso(sl.created_at),
        "updatedAt": _iso(sl.updated_at),
        "songCount": len(entries),
        "songs": [serialize_entry(e) for e in entries],
    }
