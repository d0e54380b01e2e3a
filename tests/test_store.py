"""Tests for storage operations on setlists, songs and entries."""

import logging
import random
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

import store
from errors import (
    DuplicateEntry,
    InvalidOrderSequence,
    InvalidPosition,
    NotFound,
    StorageError,
    ValidationError,
)
from models import db, Setlist, SetlistSong, Song
from ordering import is_dense

LONG_AGO = datetime(2000, 1, 1)


def orders(setlist_id):
    return store.entry_orders(setlist_id)


def age(setlist_id):
    sl = db.session.get(Setlist, setlist_id)
    sl.updated_at = LONG_AGO
    db.session.commit()


def updated_at(setlist_id):
    return db.session.get(Setlist, setlist_id).updated_at


class TestAddSong:
    def test_append_assigns_consecutive_orders(self, user, setlist, make_song):
        songs = [make_song() for _ in range(3)]
        for s in songs:
            store.add_song(user.id, setlist.id, s.id)

        assert orders(setlist.id) == [(songs[0].id, 1), (songs[1].id, 2), (songs[2].id, 3)]

    def test_insert_shifts_conflicting_entries(self, user, setlist, make_song):
        a, b, c = make_song(), make_song(), make_song()
        store.add_song(user.id, setlist.id, a.id)
        store.add_song(user.id, setlist.id, b.id)
        store.add_song(user.id, setlist.id, c.id, position=2)

        assert orders(setlist.id) == [(a.id, 1), (c.id, 2), (b.id, 3)]

    def test_returns_created_entry(self, user, setlist, make_song):
        song = make_song()
        entry = store.add_song(user.id, setlist.id, song.id)
        assert entry.song_id == song.id
        assert entry.order == 1

    def test_duplicate_rejected_and_entries_unchanged(self, user, setlist, make_song):
        a, b = make_song(), make_song()
        store.add_song(user.id, setlist.id, a.id)
        store.add_song(user.id, setlist.id, b.id)
        before = orders(setlist.id)

        with pytest.raises(DuplicateEntry):
            store.add_song(user.id, setlist.id, a.id, position=1)

        assert orders(setlist.id) == before

    @pytest.mark.parametrize("position", [0, 3])
    def test_position_out_of_range(self, user, setlist, make_song, position):
        a, b = make_song(), make_song()
        store.add_song(user.id, setlist.id, a.id)

        with pytest.raises(InvalidPosition):
            store.add_song(user.id, setlist.id, b.id, position=position)

        assert orders(setlist.id) == [(a.id, 1)]

    def test_missing_setlist(self, user, make_song):
        with pytest.raises(NotFound):
            store.add_song(user.id, 999, make_song().id)

    def test_missing_song(self, user, setlist):
        with pytest.raises(NotFound):
            store.add_song(user.id, setlist.id, 999)

    def test_song_owned_by_someone_else(self, user, other_user, setlist, make_song):
        foreign = make_song(owner=other_user)
        with pytest.raises(NotFound):
            store.add_song(user.id, setlist.id, foreign.id)
        assert orders(setlist.id) == []

    def test_setlist_owned_by_someone_else(self, other_user, setlist, make_song):
        song = make_song(owner=other_user)
        with pytest.raises(NotFound):
            store.add_song(other_user.id, setlist.id, song.id)

    def test_touches_setlist(self, user, setlist, make_song):
        song = make_song()
        age(setlist.id)
        store.add_song(user.id, setlist.id, song.id)
        assert updated_at(setlist.id) > LONG_AGO


class TestRemoveSong:
    def test_closes_gap(self, user, setlist, make_song):
        a, b, c = make_song(), make_song(), make_song()
        for s in (a, b, c):
            store.add_song(user.id, setlist.id, s.id)

        store.remove_song(user.id, setlist.id, b.id)

        assert orders(setlist.id) == [(a.id, 1), (c.id, 2)]

    def test_missing_entry_rejected_and_state_unchanged(self, user, setlist, make_song):
        a, b = make_song(), make_song()
        store.add_song(user.id, setlist.id, a.id)
        age(setlist.id)

        with pytest.raises(NotFound):
            store.remove_song(user.id, setlist.id, b.id)

        assert orders(setlist.id) == [(a.id, 1)]
        assert updated_at(setlist.id) == LONG_AGO

    def test_song_row_survives(self, user, setlist, make_song):
        song = make_song()
        store.add_song(user.id, setlist.id, song.id)
        store.remove_song(user.id, setlist.id, song.id)
        assert db.session.get(Song, song.id) is not None

    def test_touches_setlist(self, user, setlist, make_song):
        song = make_song()
        store.add_song(user.id, setlist.id, song.id)
        age(setlist.id)
        store.remove_song(user.id, setlist.id, song.id)
        assert updated_at(setlist.id) > LONG_AGO


class TestOrderInvariant:
    def test_random_add_remove_keeps_orders_dense(self, user, setlist, make_song):
        rng = random.Random(1234)
        library = [make_song() for _ in range(8)]
        present = []

        for _ in range(60):
            absent = [s for s in library if s.id not in present]
            if present and (not absent or rng.random() < 0.4):
                sid = rng.choice(present)
                store.remove_song(user.id, setlist.id, sid)
                present.remove(sid)
            else:
                song = rng.choice(absent)
                if rng.random() < 0.5:
                    store.add_song(user.id, setlist.id, song.id)
                    present.append(song.id)
                else:
                    position = rng.randint(1, len(present) + 1)
                    store.add_song(user.id, setlist.id, song.id, position=position)
                    present.insert(position - 1, song.id)

            current = orders(setlist.id)
            assert is_dense([o for _, o in current])
            assert len(current) == len(present)
            assert [sid for sid, _ in current] == present


class TestBulkReorder:
    def test_applies_new_order(self, user, setlist, make_song):
        a, b, c = make_song(), make_song(), make_song()
        for s in (a, b, c):
            store.add_song(user.id, setlist.id, s.id)

        store.bulk_reorder(user.id, setlist.id, [c.id, a.id, b.id])

        assert orders(setlist.id) == [(c.id, 1), (a.id, 2), (b.id, 3)]

    def test_is_idempotent(self, user, setlist, make_song):
        a, b, c = make_song(), make_song(), make_song()
        for s in (a, b, c):
            store.add_song(user.id, setlist.id, s.id)

        store.bulk_reorder(user.id, setlist.id, [b.id, c.id, a.id])
        first = orders(setlist.id)
        store.bulk_reorder(user.id, setlist.id, [b.id, c.id, a.id])

        assert orders(setlist.id) == first

    def test_accepts_new_membership(self, user, setlist, make_song):
        a, b, c = make_song(), make_song(), make_song()
        store.add_song(user.id, setlist.id, a.id)
        store.add_song(user.id, setlist.id, b.id)

        store.bulk_reorder(user.id, setlist.id, [c.id, a.id])

        assert orders(setlist.id) == [(c.id, 1), (a.id, 2)]

    def test_empty_list_clears_setlist(self, user, setlist, make_song):
        store.add_song(user.id, setlist.id, make_song().id)
        store.bulk_reorder(user.id, setlist.id, [])
        assert orders(setlist.id) == []

    def test_duplicate_song_ids_rejected(self, user, setlist, make_song):
        a = make_song()
        store.add_song(user.id, setlist.id, a.id)
        with pytest.raises(InvalidOrderSequence):
            store.bulk_reorder(user.id, setlist.id, [a.id, a.id])
        assert orders(setlist.id) == [(a.id, 1)]

    def test_unknown_song_leaves_previous_state(self, user, setlist, make_song):
        a, b = make_song(), make_song()
        store.add_song(user.id, setlist.id, a.id)
        store.add_song(user.id, setlist.id, b.id)

        with pytest.raises(NotFound):
            store.bulk_reorder(user.id, setlist.id, [b.id, 999])

        assert orders(setlist.id) == [(a.id, 1), (b.id, 2)]

    def test_failure_mid_recreate_rolls_back(self, user, setlist, make_song, monkeypatch):
        a, b, c = make_song(), make_song(), make_song()
        for s in (a, b, c):
            store.add_song(user.id, setlist.id, s.id)
        before = orders(setlist.id)

        created = []
        real_entry = store.SetlistSong

        def flaky_entry(**kwargs):
            created.append(kwargs)
            if len(created) == 2:
                raise IntegrityError("INSERT INTO setlist_song", {}, Exception("boom"))
            return real_entry(**kwargs)

        monkeypatch.setattr(store, "SetlistSong", flaky_entry)
        with pytest.raises(StorageError):
            store.bulk_reorder(user.id, setlist.id, [c.id, b.id, a.id])
        monkeypatch.undo()

        assert orders(setlist.id) == before

    def test_replace_entries_validates_orders(self, user, setlist, make_song):
        a, b = make_song(), make_song()
        with pytest.raises(InvalidOrderSequence):
            store.replace_entries(user.id, setlist.id, [(a.id, 1), (b.id, 3)])

    def test_replace_entries_sorts_pairs(self, user, setlist, make_song):
        a, b = make_song(), make_song()
        store.replace_entries(user.id, setlist.id, [(a.id, 2), (b.id, 1)])
        assert orders(setlist.id) == [(b.id, 1), (a.id, 2)]

    def test_touches_setlist(self, user, setlist, make_song):
        a = make_song()
        store.add_song(user.id, setlist.id, a.id)
        age(setlist.id)
        store.bulk_reorder(user.id, setlist.id, [a.id])
        assert updated_at(setlist.id) > LONG_AGO


class TestScenario:
    def test_gig_walkthrough(self, user, make_song):
        gig = store.create_setlist(user.id, "Gig1")
        s1, s2, s3, s4 = (make_song(f"S{i}") for i in range(1, 5))

        for s in (s1, s2, s3):
            store.add_song(user.id, gig.id, s.id)
        assert orders(gig.id) == [(s1.id, 1), (s2.id, 2), (s3.id, 3)]

        store.remove_song(user.id, gig.id, s2.id)
        assert orders(gig.id) == [(s1.id, 1), (s3.id, 2)]

        store.add_song(user.id, gig.id, s4.id, position=1)
        assert orders(gig.id) == [(s4.id, 1), (s1.id, 2), (s3.id, 3)]


class TestSetlists:
    def test_create_trims_name(self, user):
        sl = store.create_setlist(user.id, "  Friday  ")
        assert sl.name == "Friday"
        assert sl.entries == []

    @pytest.mark.parametrize("name", ["", "   ", None, "x" * 201])
    def test_create_rejects_bad_name(self, user, name):
        with pytest.raises(ValidationError):
            store.create_setlist(user.id, name)

    def test_update_renames_and_touches(self, user, setlist):
        age(setlist.id)
        store.update_setlist(user.id, setlist.id, "Gig2")
        sl = db.session.get(Setlist, setlist.id)
        assert sl.name == "Gig2"
        assert sl.updated_at > LONG_AGO

    def test_update_someone_elses_setlist(self, other_user, setlist):
        with pytest.raises(NotFound):
            store.update_setlist(other_user.id, setlist.id, "Mine now")

    def test_get_returns_entries_in_order(self, user, setlist, make_song):
        a, b = make_song(), make_song()
        store.add_song(user.id, setlist.id, a.id)
        store.add_song(user.id, setlist.id, b.id, position=1)
        sl = store.get_setlist(user.id, setlist.id)
        assert [e.song_id for e in sl.entries] == [b.id, a.id]

    def test_delete_removes_entries(self, user, setlist, make_song):
        song = make_song()
        store.add_song(user.id, setlist.id, song.id)
        setlist_id = setlist.id

        store.delete_setlist(user.id, setlist_id)

        assert db.session.get(Setlist, setlist_id) is None
        assert SetlistSong.query.filter_by(setlist_id=setlist_id).count() == 0
        assert db.session.get(Song, song.id) is not None

    def test_delete_missing(self, user):
        with pytest.raises(NotFound):
            store.delete_setlist(user.id, 42)

    def test_list_filters_by_owner_and_search(self, user, other_user):
        store.create_setlist(user.id, "Friday Pub")
        store.create_setlist(user.id, "Wedding")
        store.create_setlist(other_user.id, "Friday Other")

        rows, total = store.list_setlists(user.id, search="friday")

        assert total == 1
        assert [r.name for r in rows] == ["Friday Pub"]

    def test_list_search_treats_wildcards_literally(self, user):
        store.create_setlist(user.id, "100% Rock")
        store.create_setlist(user.id, "Folk")

        rows, total = store.list_setlists(user.id, search="%")

        assert [r.name for r in rows] == ["100% Rock"]

    def test_list_paginates_most_recent_first(self, user):
        created = [store.create_setlist(user.id, f"Show {i}").id for i in range(5)]

        rows, total = store.list_setlists(user.id, limit=2, offset=1)

        assert total == 5
        assert [r.id for r in rows] == [created[3], created[2]]


class TestSongs:
    def test_create_and_update(self, user):
        song = store.create_song(user.id, " Hallelujah ", "Now I've heard")
        assert song.title == "Hallelujah"

        store.update_song(user.id, song.id, "Hallelujah (live)", "Now I've heard there was")
        assert db.session.get(Song, song.id).title == "Hallelujah (live)"

    @pytest.mark.parametrize("title,lyrics", [("", "words"), ("Title", "  "), ("x" * 201, "words")])
    def test_create_validation(self, user, title, lyrics):
        with pytest.raises(ValidationError):
            store.create_song(user.id, title, lyrics)

    def test_list_only_own_songs(self, user, other_user, make_song):
        mine = make_song()
        make_song(owner=other_user)
        assert [s.id for s in store.list_songs(user.id)] == [mine.id]

    def test_get_someone_elses_song(self, other_user, make_song):
        song = make_song()
        with pytest.raises(NotFound):
            store.get_song(other_user.id, song.id)

    def test_delete_removes_from_every_setlist_and_closes_gaps(self, user, make_song):
        first = store.create_setlist(user.id, "First")
        second = store.create_setlist(user.id, "Second")
        a, b, c = make_song(), make_song(), make_song()
        for s in (a, b, c):
            store.add_song(user.id, first.id, s.id)
        for s in (b, c, a):
            store.add_song(user.id, second.id, s.id)
        age(first.id)
        age(second.id)

        a_id = a.id

        touched = store.delete_song(user.id, a_id)

        assert sorted(touched) == sorted([first.id, second.id])
        assert orders(first.id) == [(b.id, 1), (c.id, 2)]
        assert orders(second.id) == [(b.id, 1), (c.id, 2)]
        assert SetlistSong.query.filter_by(song_id=a_id).count() == 0
        assert db.session.get(Song, a_id) is None
        assert updated_at(first.id) > LONG_AGO

    def test_delete_song_not_in_any_setlist(self, user, make_song):
        song = make_song()
        assert store.delete_song(user.id, song.id) == []

    def test_delete_missing_song(self, user):
        with pytest.raises(NotFound):
            store.delete_song(user.id, 7)


class TestTransaction:
    def test_database_error_becomes_storage_error_and_rolls_back(self, user):
        with pytest.raises(StorageError):
            with store.transaction() as session:
                session.add(Setlist(name="Ghost", user_id=user.id))
                session.flush()
                raise IntegrityError("INSERT", {}, Exception("boom"))

        assert Setlist.query.filter_by(name="Ghost").count() == 0

    def test_domain_error_passes_through(self, user):
        with pytest.raises(DuplicateEntry):
            with store.transaction() as session:
                session.add(Setlist(name="Ghost", user_id=user.id))
                raise DuplicateEntry("nope")

        assert Setlist.query.filter_by(name="Ghost").count() == 0

    def test_rejection_is_logged(self, user, setlist, caplog):
        with caplog.at_level(logging.WARNING, logger="setlists"):
            with pytest.raises(NotFound):
                store.remove_song(user.id, setlist.id, 1)

        assert "NotFound" in caplog.text
