"""
In-process stand-in for the PlayLink backend, for tests.

Routes are registered per (method, path) and answered through `httpx.MockTransport`;
every request that reaches the fake is recorded so tests can count network calls.
"""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx

Responder = Union[Callable[[httpx.Request], httpx.Response], Tuple[int, Any], Any]


class FakeBackend:
    def __init__(self):
        self.routes: Dict[Tuple[str, str], Responder] = {}
        self.requests: List[httpx.Request] = []

    # ---- registration --------------------------------------------------------

    def on(self, method: str, path: str, body: Any = None, *, status: int = 200,
           cookies: Optional[Dict[str, str]] = None) -> "FakeBackend":
        if callable(body):
            self.routes[(method.upper(), path)] = body
            return self

        def respond(request: httpx.Request) -> httpx.Response:
            headers = [("set-cookie", f"{k}={v}; Path=/") for k, v in (cookies or {}).items()]
            return httpx.Response(status, json=body if body is not None else {}, headers=headers)

        self.routes[(method.upper(), path)] = respond
        return self

    def fail(self, method: str, path: str, exc: Optional[Exception] = None) -> "FakeBackend":
        def respond(request: httpx.Request) -> httpx.Response:
            raise exc or httpx.ConnectError("connection refused", request=request)

        self.routes[(method.upper(), path)] = respond
        return self

    def signed_in_as(self, account_type: str = "VENUE_OWNER", **user: Any) -> "FakeBackend":
        payload = {"id": "u1", "email": "owner@playlink.test", "fullName": "Venue Boss", "accountType": account_type}
        payload.update(user)
        return self.on("GET", "/api/users/authenticate", {"authenticated": True, "user": payload})

    def anonymous(self) -> "FakeBackend":
        return self.on("GET", "/api/users/authenticate", {"message": "Not authenticated"}, status=401)

    # ---- inspection ----------------------------------------------------------

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method.upper()) and (path is None or r.url.path == path)
        ]

    def last_json(self, method: str, path: str) -> Any:
        calls = self.calls(method, path)
        if not calls:
            raise AssertionError(f"no {method} {path} request was sent")
        return json.loads(calls[-1].content or b"null")

    # ---- transport -----------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self.routes.get((request.method, request.url.path))
        if responder is None:
            return httpx.Response(404, json={"message": f"No fake route for {request.method} {request.url.path}"})
        return responder(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

