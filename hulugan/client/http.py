"""Async HTTP client for the fund API.

HuluganClient keeps the session's access token in memory, and acts as
both the identity provider and the record store for the consoles.

**Example Usage:**

.. code-block:: python

    async with HuluganClient("http://127.0.0.1:8000") as client:
        console = AdminConsole(client, client)
        await console.start()
        await console.verify_magic_link(token_from_email)
        await console.set_paid_weeks(group_id, 4)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Self

import httpx

from hulugan.common import AuthError, Group, LoadError, Role, SaveError, Session

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from .protocols import AuthStateListener

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


def _detail(response: httpx.Response) -> str:
    """Extract the error message the API put in a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return response.text or response.reason_phrase


def _json_object(response: httpx.Response, what: str) -> dict[str, Any]:
    """Decode a successful auth response, which must be a JSON object.

    :raises AuthError: If the body is not a JSON object
    """
    try:
        body = response.json()
    except ValueError as e:
        msg = f"{what} response was not JSON"
        raise AuthError(msg) from e
    if not isinstance(body, dict):
        msg = f"{what} response was not an object"
        raise AuthError(msg)
    return body


def _session_from_json(data: Any) -> Session:
    """Build a Session from its JSON form.

    :raises AuthError: If fields are missing or malformed
    """
    try:
        return Session(
            session_id=str(data["session_id"]),
            user_id=str(data["user_id"]),
            email=str(data["email"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        msg = f"Malformed session in response: {e!r}"
        raise AuthError(msg) from e


class HuluganClient:
    """Client-side identity provider and record store over HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a client for the API at base_url.

        :param base_url: Root URL of the fund API
        :param timeout: Per-request timeout in seconds
        :param transport: Optional transport override, used by tests
        """
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )
        self._access_token: str | None = None
        self._session: Session | None = None
        self._listeners: list[AuthStateListener] = []

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def session(self) -> Session | None:
        return self._session

    def _auth_headers(self) -> dict[str, str]:
        if self._access_token is None:
            return {}
        return {"Authorization": f"Bearer {self._access_token}"}

    def on_auth_state_change(self, listener: AuthStateListener) -> Callable[[], None]:
        """Register a listener called with the new session after every change.

        :param listener: Coroutine function taking the new session or None
        :return: A callable that unregisters the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _set_session(self, session: Session | None, token: str | None) -> None:
        self._session = session
        self._access_token = token
        for listener in list(self._listeners):
            await listener(session)

    async def get_session(self) -> Session | None:
        """Fetch the current session from the API.

        A rejected token is dropped locally, which counts as an
        authentication state change.

        :return: The live session, or None when signed out
        :raises AuthError: If the API cannot be reached
        """
        if self._access_token is None:
            return None

        try:
            response = await self._http.get(
                "/auth/session",
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as e:
            msg = f"Could not fetch session: {e}"
            raise AuthError(msg) from e

        if response.status_code == httpx.codes.UNAUTHORIZED:
            LOGGER.debug("Stored access token was rejected")
            await self._set_session(None, None)
            return None
        if response.is_error:
            raise AuthError(_detail(response))

        self._session = _session_from_json(_json_object(response, "Session"))
        return self._session

    async def send_magic_link(self, email: str, redirect_to: str | None = None) -> None:
        """Ask the API to email a one-time sign-in link.

        :raises AuthError: If the request fails or the API rejects it
        """
        payload: dict[str, Any] = {"email": email}
        if redirect_to is not None:
            payload["redirect_to"] = redirect_to

        try:
            response = await self._http.post("/auth/magic-link", json=payload)
        except httpx.HTTPError as e:
            msg = f"Could not send sign-in link: {e}"
            raise AuthError(msg) from e

        if response.is_error:
            raise AuthError(_detail(response))

    async def verify_magic_link(self, token: str) -> Session:
        """Exchange a sign-in link token for a session and notify listeners.

        :raises AuthError: If the link is invalid, expired or already used
        """
        try:
            response = await self._http.post("/auth/verify", json={"token": token})
        except httpx.HTTPError as e:
            msg = f"Could not verify sign-in link: {e}"
            raise AuthError(msg) from e

        if response.is_error:
            raise AuthError(_detail(response))

        body = _json_object(response, "Sign-in")
        session = _session_from_json(body.get("session"))
        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            msg = "Sign-in response carried no access token"
            raise AuthError(msg)
        await self._set_session(session, access_token)
        return session

    async def sign_out(self) -> None:
        """End the session on the API and locally.

        Local state is cleared and listeners notified even if the API call
        fails, so the client never stays signed in against its will.

        :raises AuthError: If the API could not be told about the sign-out
        """
        if self._access_token is None:
            await self._set_session(None, None)
            return

        headers = self._auth_headers()
        try:
            response = await self._http.post("/auth/logout", headers=headers)
        except httpx.HTTPError as e:
            msg = f"Could not sign out: {e}"
            raise AuthError(msg) from e
        finally:
            await self._set_session(None, None)

        if response.is_error and response.status_code != httpx.codes.UNAUTHORIZED:
            raise AuthError(_detail(response))

    async def get_role(self, session: Session) -> Role:
        """Look up the role for the current session.

        :param session: The session whose role is wanted; must be the active one
        :raises AuthError: If the lookup fails
        """
        if self._session is None or session.session_id != self._session.session_id:
            msg = "Role can only be looked up for the active session"
            raise AuthError(msg)

        try:
            response = await self._http.get("/auth/role", headers=self._auth_headers())
        except httpx.HTTPError as e:
            msg = f"Could not look up role: {e}"
            raise AuthError(msg) from e

        if response.is_error:
            raise AuthError(_detail(response))
        return Role.from_mapping(_json_object(response, "Role").get("role"))

    async def list_groups(self) -> list[Group]:
        """Load the entire group collection, most recently updated first.

        :raises LoadError: If the request fails or returns something unexpected
        """
        try:
            response = await self._http.get("/groups")
        except httpx.HTTPError as e:
            msg = f"Could not load groups: {e}"
            raise LoadError(msg) from e

        if response.is_error:
            raise LoadError(_detail(response))

        try:
            body = response.json()
        except ValueError as e:
            msg = "Group list response was not JSON"
            raise LoadError(msg) from e

        if not isinstance(body, list):
            msg = "Group list response was not a list"
            raise LoadError(msg)
        return [Group.from_record(record) for record in body if isinstance(record, dict)]

    async def update_paid_weeks(self, group_id: str, paid_weeks: int) -> None:
        """Set a group's paid weeks as the current session.

        :raises SaveError: If the request fails or the store rejects it
        """
        try:
            response = await self._http.patch(
                f"/groups/{group_id}",
                json={"paid_weeks": paid_weeks},
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as e:
            msg = f"Could not save paid weeks: {e}"
            raise SaveError(msg) from e

        if response.is_error:
            raise SaveError(_detail(response))
