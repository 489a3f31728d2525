from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from fastapi import Request, Response


# Expiry used to delete a cookie: "Thu, 01 Jan 1970 00:00:00 GMT"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class CookieStorage(Protocol):
    """
    The client-side storage medium the assignment store reads and writes.

    Implementations decide where the cookie lives (a live request, an
    in-memory jar, or nowhere at all). An ``expires`` at or before the
    current time deletes the cookie.
    """

    def get(self, name: str) -> Optional[str]: ...

    def set(
        self,
        name: str,
        value: str,
        *,
        expires: datetime,
        path: str = "/",
        samesite: str = "lax",
    ) -> None: ...


class NullCookieStorage:
    """Used when no storage medium exists (e.g. non-interactive rendering)."""

    def get(self, name: str) -> Optional[str]:
        return None

    def set(
        self,
        name: str,
        value: str,
        *,
        expires: datetime,
        path: str = "/",
        samesite: str = "lax",
    ) -> None:
        return None


class RequestCookieStorage:
    """
    Reads cookies from an incoming request and writes ``Set-Cookie`` headers
    on the outgoing response.

    Writes are mirrored locally so that later reads in the same request see
    them.
    """

    def __init__(self, request: Request, response: Response):
        self._cookies: Dict[str, str] = dict(request.cookies)
        self._response = response

    def get(self, name: str) -> Optional[str]:
        return self._cookies.get(name)

    def set(
        self,
        name: str,
        value: str,
        *,
        expires: datetime,
        path: str = "/",
        samesite: str = "lax",
    ) -> None:
        if expires <= datetime.now(timezone.utc):
            self._cookies.pop(name, None)
        else:
            self._cookies[name] = value

        self._response.set_cookie(
            key=name,
            value=value,
            expires=expires,
            path=path,
            samesite=samesite,
        )


def get_cookie_storage(request: Request, response: Response) -> CookieStorage:
    """
    Dependency that exposes the current request/response pair as the
    assignment cookie medium.
    """
    return RequestCookieStorage(request, response)
