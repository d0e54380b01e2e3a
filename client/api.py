"""HTTP client for the setlist API.

Thin wrapper over ``requests``: one method per route, JSON in and out,
errors raised as ``SetlistApiError``. Authentication rides on the session
cookie set by ``login``.
"""

from typing import Any, Dict, List, Optional, Sequence

import requests

import config


class SetlistApiError(Exception):
    """Error returned by (or while reaching) the setlist API."""

    def __init__(self, message: str, status_code: Optional[int] = None, kind: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.kind = kind


class SetlistApi:
    """Client for the setlist REST API.

    Attributes:
        base_url: Base URL of the API server
        timeout: Request timeout in seconds
        session: ``requests.Session`` carrying the login cookie
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.API_TIMEOUT
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, json: Any = None,
                 params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send one request and return the decoded body.

        Raises:
            SetlistApiError: On transport failure or any non-2xx response
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, json=json, params=params, timeout=self.timeout
            )
        except requests.exceptions.ConnectionError as e:
            raise SetlistApiError(f"Cannot connect to setlist API at {self.base_url}: {e}")
        except requests.exceptions.RequestException as e:
            raise SetlistApiError(f"{method} {path} failed: {e}")

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400 or not data.get("ok", False):
            message = data.get("error") or f"{method} {path} failed (HTTP {response.status_code})"
            raise SetlistApiError(message, status_code=response.status_code, kind=data.get("kind"))
        return data

    # Auth

    def login(self, username: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/api/auth/login",
                             json={"username": username, "password": password})["user"]

    def logout(self) -> None:
        self._request("POST", "/api/auth/logout")

    # Songs

    def list_songs(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/songs")["songs"]

    def create_song(self, title: str, lyrics: str) -> Dict[str, Any]:
        return self._request("POST", "/api/songs", json={"title": title, "lyrics": lyrics})["song"]

    def update_song(self, song_id: int, title: str, lyrics: str) -> Dict[str, Any]:
        return self._request("PUT", f"/api/songs/{song_id}",
                             json={"title": title, "lyrics": lyrics})["song"]

    def delete_song(self, song_id: int) -> None:
        self._request("DELETE", f"/api/songs/{song_id}")

    # Setlists

    def list_setlists(self, search: Optional[str] = None, limit: Optional[int] = None,
                      offset: Optional[int] = None) -> Dict[str, Any]:
        """Return ``{"setlists": [...], "pagination": {...}}``."""
        params = {}
        if search:
            params["search"] = search
        if limit:
            params["limit"] = limit
        if offset:
            params["offset"] = offset
        data = self._request("GET", "/api/setlists", params=params or None)
        return {"setlists": data["setlists"], "pagination": data["pagination"]}

    def get_setlist(self, setlist_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/api/setlists/{setlist_id}")["setlist"]

    def create_setlist(self, name: str) -> Dict[str, Any]:
        return self._request("POST", "/api/setlists", json={"name": name})["setlist"]

    def update_setlist(self, setlist_id: int, name: str) -> Dict[str, Any]:
        return self._request("PUT", f"/api/setlists/{setlist_id}", json={"name": name})["setlist"]

    def delete_setlist(self, setlist_id: int) -> None:
        self._request("DELETE", f"/api/setlists/{setlist_id}")

    def add_song(self, setlist_id: int, song_id: int, position: Optional[int] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"songId": song_id}
        if position is not None:
            payload["order"] = position
        return self._request("POST", f"/api/setlists/{setlist_id}/songs", json=payload)["entry"]

    def remove_song(self, setlist_id: int, song_id: int) -> None:
        self._request("DELETE", f"/api/setlists/{setlist_id}/songs/{song_id}")

    def reorder(self, setlist_id: int, song_ids: Sequence[int]) -> List[Dict[str, Any]]:
        return self._request("PUT", f"/api/setlists/{setlist_id}/reorder",
                             json={"songIds": list(song_ids)})["songs"]
