"""
Python client for the Clubhouse REST API.

ApiClient mirrors the server's routes. ReadCache wraps a list fetch with an
eventually-reconciled cache: reads are refreshed at most every
refresh_interval seconds, and while the server is unreachable the last
successful result is served (flagged stale) until it is older than
max_staleness.

Usage:
    client = ApiClient("http://localhost:3000/api")
    client.login("admin@example.com", "secret", role="admin")
    events = CachedResource(client.events)
    read = events.list()
    if read.stale:
        print("Showing cached events")
"""

import logging
import time
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import requests

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    """The server answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ApiUnavailableError(Exception):
    """The server could not be reached."""


class Resource:
    """CRUD calls for one collection (users, events or products)."""

    def __init__(self, client: "ApiClient", path: str):
        self.client = client
        self.path = path

    def get_all(self) -> List[Dict[str, Any]]:
        return self.client.request("GET", self.path)

    def get_by_id(self, item_id: int) -> Dict[str, Any]:
        return self.client.request("GET", f"{self.path}/{item_id}")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.request("POST", self.path, json=data)

    def update(self, item_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.request("PUT", f"{self.path}/{item_id}", json=data)

    def delete(self, item_id: int) -> Dict[str, Any]:
        return self.client.request("DELETE", f"{self.path}/{item_id}")


class ApiClient:
    def __init__(self, base_url: str, token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

        self.users = Resource(self, "/users")
        self.events = Resource(self, "/events")
        self.products = Resource(self, "/products")

    def request(self, method: str, endpoint: str, json: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send one request and decode the JSON body.

        Raises:
            ApiUnavailableError: On connection errors and timeouts.
            ApiClientError: On any non-2xx response.
        """
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.session.request(
                method, f"{self.base_url}{endpoint}",
                json=json, headers=headers, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ApiUnavailableError(str(e)) from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiClientError(message or f"HTTP error! status: {response.status_code}",
                                 response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ApiClientError(f"Invalid JSON response: {e}", response.status_code) from e

    # --- AUTH ---
    def login(self, email: str, password: str, role: str = "user") -> Dict[str, Any]:
        data = self.request("POST", "/login", json={"email": email, "password": password, "role": role})
        self.token = data.get("token")
        return data

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        data = self.request("POST", "/register",
                            json={"username": username, "email": email, "password": password})
        self.token = data.get("token")
        return data

    def logout(self) -> None:
        self.token = None

    def me(self) -> Dict[str, Any]:
        return self.request("GET", "/me")

    # --- DASHBOARD ---
    def dashboard_stats(self) -> Dict[str, int]:
        return self.request("GET", "/dashboard/stats")

    def leaderboard(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self.request("GET", f"/leaderboard?limit={limit}")


class CachedRead(NamedTuple):
    data: Any
    fetched_at: float
    stale: bool


class ReadCache:
    """
    Cache for a single read with a bounded staleness window.

    The last successful fetch always wins; there is no merging with local
    edits.
    """

    def __init__(self, fetch: Callable[[], Any], max_staleness: float = 30.0,
                 refresh_interval: float = 5.0, clock: Callable[[], float] = time.monotonic):
        if refresh_interval < 0 or max_staleness < refresh_interval:
            raise ValueError("require 0 <= refresh_interval <= max_staleness")
        self.fetch = fetch
        self.max_staleness = max_staleness
        self.refresh_interval = refresh_interval
        self.clock = clock
        self._data: Any = None
        self._fetched_at: Optional[float] = None

    def age(self) -> Optional[float]:
        if self._fetched_at is None:
            return None
        return self.clock() - self._fetched_at

    def invalidate(self) -> None:
        self._data = None
        self._fetched_at = None

    def get(self) -> CachedRead:
        """
        Return fresh data, cached data, or raise.

        Raises:
            ApiUnavailableError: Server unreachable and no cached copy within
                max_staleness.
            ApiClientError: The server rejected the request.
        """
        age = self.age()
        if age is not None and age < self.refresh_interval:
            return CachedRead(self._data, self._fetched_at, False)

        try:
            data = self.fetch()
        except ApiUnavailableError:
            if age is not None and age <= self.max_staleness:
                logger.warning(f"API unreachable, serving cached data ({age:.1f}s old)")
                return CachedRead(self._data, self._fetched_at, True)
            raise

        self._data = data
        self._fetched_at = self.clock()
        return CachedRead(data, self._fetched_at, False)


class CachedResource:
    """A Resource whose list read goes through a ReadCache."""

    def __init__(self, resource: Resource, **cache_options: Any):
        self.resource = resource
        self.cache = ReadCache(resource.get_all, **cache_options)

    def list(self) -> CachedRead:
        return self.cache.get()

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self.resource.create(data)
        self.cache.invalidate()
        return result

    def update(self, item_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self.resource.update(item_id, data)
        self.cache.invalidate()
        return result

    def delete(self, item_id: int) -> Dict[str, Any]:
        result = self.resource.delete(item_id)
        self.cache.invalidate()
        return result
