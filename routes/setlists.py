from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

import store
from errors import ValidationError
from routes.common import current_user_id, json_body, non_negative_int, positive_int
from serializers import serialize_entry, serialize_setlist

setlists_bp = Blueprint("setlists", __name__, url_prefix="/api/setlists")


@setlists_bp.get("")
@login_required
def list_setlists():
    default_limit = current_app.config["DEFAULT_PAGE_LIMIT"]
    max_limit = current_app.config["MAX_PAGE_LIMIT"]
    limit = positive_int(request.args.get("limit", default_limit), "limit")
    if limit > max_limit:
        raise ValidationError(f"limit must be at most {max_limit}", field="limit")
    offset = non_negative_int(request.args.get("offset", 0), "offset")
    search = (request.args.get("search") or "").strip() or None

    rows, total = store.list_setlists(current_user_id(), search=search, limit=limit, offset=offset)
    return jsonify({
        "ok": True,
        "setlists": [serialize_setlist(sl) for sl in rows],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < total,
        },
    })


@setlists_bp.get("/<int:setlist_id>")
@login_required
def get_setlist(setlist_id):
    sl = store.get_setlist(current_user_id(), setlist_id)
    return jsonify({"ok": True, "setlist": serialize_setlist(sl)})


@setlists_bp.post("")
@login_required
def create_setlist():
    payload = json_body()
    sl = store.create_setlist(current_user_id(), payload.get("name"))
    return jsonify({"ok": True, "setlist": serialize_setlist(sl), "message": "Setlist created."}), 201


@setlists_bp.put("/<int:setlist_id>")
@login_required
def update_setlist(setlist_id):
    payload = json_body()
    sl = store.update_setlist(current_user_id(), setlist_id, payload.get("name"))
    return jsonify({"ok": True, "setlist": serialize_setlist(sl), "message": "Setlist saved."})


@setlists_bp.delete("/<int:setlist_id>")
@login_required
def delete_setlist(setlist_id):
    store.delete_setlist(current_user_id(), setlist_id)
    return jsonify({"ok": True, "message": "Setlist deleted."})


@setlists_bp.post("/<int:setlist_id>/songs")
@login_required
def add_song(setlist_id):
    payload = json_body()
    song_id = positive_int(payload.get("songId"), "songId")
    position = payload.get("order")
    if position is not None:
        position = positive_int(position, "order")

    entry = store.add_song(current_user_id(), setlist_id, song_id, position)
    return jsonify({
        "ok": True,
        "entry": {"setlistId": setlist_id, **serialize_entry(entry)},
        "message": "Song added to setlist.",
    }), 201


@setlists_bp.delete("/<int:setlist_id>/songs/<int:song_id>")
@login_required
def remove_song(setlist_id, song_id):
    store.remove_song(current_user_id(), setlist_id, song_id)
    return jsonify({"ok": True, "message": "Song removed from setlist."})


@setlists_bp.put("/<int:setlist_id>/reorder")
@login_required
def reorder(setlist_id):
    payload = json_body()
    user_id = current_user_id()

    if "songIds" in payload:
        song_ids = payload["songIds"]
        if not isinstance(song_ids, list):
            raise ValidationError("songIds must be a list", field="songIds")
        song_ids = [positive_int(sid, "songId") for sid in song_ids]
        entries = store.bulk_reorder(user_id, setlist_id, song_ids)
    elif "songOrders" in payload:
        song_orders = payload["songOrders"]
        if not isinstance(song_orders, list):
            raise ValidationError("songOrders must be a list", field="songOrders")
        pairs = []
        for item in song_orders:
            if not isinstance(item, dict):
                raise ValidationError("Each songOrder must be an object", field="songOrders")
            pairs.append((positive_int(item.get("songId"), "songId"),
                          positive_int(item.get("order"), "order")))
        entries = store.replace_entries(user_id, setlist_id, pairs)
    else:
        raise ValidationError("songIds or songOrders is required")

    return jsonify({
        "ok": True,
        "songs": [serialize_entry(e) for e in entries],
        "message": "Setlist reordered.",
    })
