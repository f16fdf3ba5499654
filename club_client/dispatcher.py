"""
Authenticated request dispatcher for the club API.

Every call carries the stored bearer token. A 401 triggers one token renewal
(GET /auth/refresh); requests that hit 401 while that renewal is in flight are parked and
replayed once it settles. When renewal fails the session is over: credentials are cleared,
parked callers fail with RenewalError and the navigator is sent to the login route.

Runs on a single asyncio loop. The state check and the switch to RENEWING happen with no
await between them, so two renewals can never be in flight at once.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Any

import httpx

from club_client.config import LOGIN_ROUTE, REFRESH_PATH
from club_client.credential_store import CredentialStore
from club_client.navigation import Navigator

logger = logging.getLogger(__name__)


class RenewalError(Exception):
    """Token renewal failed; a fresh login is required. __cause__ holds the underlying error."""


@dataclass(frozen=True)
class ApiRequest:
    method: str
    path: str
    json: Any = None
    params: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    # Set once the request has been through a renewal; a second 401 is final
    retried: bool = False

    def as_retry(self) -> "ApiRequest":
        return replace(self, retried=True)


class RenewalState(enum.Enum):
    IDLE = "idle"
    RENEWING = "renewing"


class PendingRequests:
    """Requests parked during a renewal, each with the future its caller is awaiting."""

    def __init__(self) -> None:
        self._entries: list[tuple[ApiRequest, asyncio.Future]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def park(self, request: ApiRequest) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self._entries.append((request, future))
        return future

    def drain(self) -> list[tuple[ApiRequest, asyncio.Future]]:
        """Remove and return every entry, oldest first."""
        entries, self._entries = self._entries, []
        return entries


def _body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class Dispatcher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        store: CredentialStore,
        *,
        refresh_path: str = REFRESH_PATH,
        login_route: str = LOGIN_ROUTE,
        navigator: Navigator | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.refresh_path = refresh_path
        self.login_route = login_route
        self.navigator = navigator if navigator is not None else Navigator()
        self.state = RenewalState.IDLE
        self.pending = PendingRequests()
        # Strong references to replay tasks until they finish
        self._replays: set[asyncio.Task] = set()

    @property
    def renewing(self) -> bool:
        return self.state is RenewalState.RENEWING

    async def dispatch(self, request: ApiRequest) -> httpx.Response:
        """
        Send request with the current credential.
        Returns the 2xx response (replayed after a renewal if needed). Raises
        httpx.HTTPStatusError for any other status, httpx.RequestError for network
        failures and RenewalError when the credential could not be renewed.
        """
        try:
            return await self._send(request)
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 401 or request.retried:
                self._log_failure(request, e.response)
                raise
        return await self._renew_and_replay(request)

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> httpx.Response:
        return await self.dispatch(ApiRequest("GET", path, params=params))

    async def post(self, path: str, json: Any = None) -> httpx.Response:
        return await self.dispatch(ApiRequest("POST", path, json=json))

    async def put(self, path: str, json: Any = None) -> httpx.Response:
        return await self.dispatch(ApiRequest("PUT", path, json=json))

    async def _send(self, request: ApiRequest) -> httpx.Response:
        headers = dict(request.headers)
        token = self.store.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        response = await self.client.request(
            request.method,
            request.path,
            json=request.json,
            params=request.params,
            headers=headers,
        )
        response.raise_for_status()
        return response

    def _log_failure(self, request: ApiRequest, response: httpx.Response) -> None:
        if response.status_code == 403:
            logger.error("Access forbidden: %s %s: %s", request.method, request.path, _body(response))
        elif response.status_code == 500:
            logger.error("Server error: %s %s: %s", request.method, request.path, _body(response))

    async def _renew_and_replay(self, request: ApiRequest) -> httpx.Response:
        if self.renewing:
            logger.debug("Renewal in flight; parking %s %s", request.method, request.path)
            return await self.pending.park(request.as_retry())

        self.state = RenewalState.RENEWING
        try:
            await self._renew()
        except asyncio.CancelledError:
            self.state = RenewalState.IDLE
            self._fail_pending("Token renewal was cancelled", None)
            raise
        except Exception as e:
            self.state = RenewalState.IDLE
            logger.warning("Token renewal failed: %s", e)
            try:
                self.store.clear()
            finally:
                self._fail_pending("Token renewal failed", e)
                self._navigate_to_login()
            raise RenewalError("Token renewal failed") from e

        self.state = RenewalState.IDLE
        self._replay_pending()
        return await self.dispatch(request.as_retry())

    async def _renew(self) -> None:
        """Hit the refresh endpoint on the raw transport, outside the 401 policy."""
        response = await self._send(ApiRequest("GET", self.refresh_path, retried=True))
        # Any 2xx is a successful renewal; only a JSON object with a token replaces the credential
        data = _body(response)
        token = data.get("token") if isinstance(data, dict) else None
        if token:
            self.store.set_token(token)
            logger.info("Access token renewed")
        else:
            logger.info("Renewal returned no token; keeping the current one")

    def _replay_pending(self) -> None:
        for request, future in self.pending.drain():
            task = asyncio.ensure_future(self._replay(request, future))
            self._replays.add(task)
            task.add_done_callback(self._replays.discard)

    async def _replay(self, request: ApiRequest, future: asyncio.Future) -> None:
        try:
            response = await self.dispatch(request)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            if not future.done():
                future.set_exception(e)
        else:
            if not future.done():
                future.set_result(response)

    def _fail_pending(self, message: str, cause: Exception | None) -> None:
        for request, future in self.pending.drain():
            if future.done():
                continue
            error = RenewalError(message)
            error.__cause__ = cause
            future.set_exception(error)

    def _navigate_to_login(self) -> None:
        if self.navigator.current != self.login_route:
            self.navigator.navigate(self.login_route)
