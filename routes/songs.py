from flask import Blueprint, jsonify
from flask_login import login_required

import store
from routes.common import current_user_id, json_body
from serializers import serialize_song

songs_bp = Blueprint("songs", __name__, url_prefix="/api/songs")


@songs_bp.get("")
@login_required
def list_songs():
    songs = store.list_songs(current_user_id())
    return jsonify({"ok": True, "songs": [serialize_song(s) for s in songs]})


@songs_bp.get("/<int:song_id>")
@login_required
def get_song(song_id: int):
    song = store.get_song(current_user_id(), song_id)
    return jsonify({"ok": True, "song": serialize_song(song, include_setlists=True)})


@songs_bp.post("")
@login_required
def create_song():
    payload = json_body()
    song = store.create_song(current_user_id(), payload.get("title"), payload.get("lyrics"))
    return jsonify({"ok": True, "song": serialize_song(song), "message": "Song created."}), 201


@songs_bp.put("/<int:song_id>")
@login_required
def update_song(song_id: int):
    payload = json_body()
    song = store.update_song(current_user_id(), song_id, payload.get("title"), payload.get("lyrics"))
    return jsonify({"ok": True, "song": serialize_song(song), "message": "Song saved."})


@songs_bp.delete("/<int:song_id>")
@login_required
def delete_song(song_id: int):
    touched = store.delete_song(current_user_id(), song_id)
    return jsonify({"ok": True, "setlistIds": touched, "message": "Song deleted."})
