"""
User Service: in-memory CRUD API for user records (name + age).

Users are addressed by their position in the shared list: ``/users/0`` is the
first user, and deleting a user shifts every later user down by one.  Every
response carries permissive CORS headers and every OPTIONS request is answered
with an empty 200, so the API can be called straight from a browser.

Errors are returned as plain-text bodies with the matching status code.

Port: 8080
"""

import json
import logging
import re
import threading

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, StrictInt, StrictStr, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

HOST = "0.0.0.0"
PORT = 8080

CORS_HEADERS = {
    "Access-Control-Allow-Origin":  "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# Optional sign followed by ASCII digits, nothing else
_USER_ID_RE = re.compile(r"[+-]?[0-9]+")
_USER_ID_MIN, _USER_ID_MAX = -2**63, 2**63 - 1

logger = logging.getLogger(__name__)


# ── Models ────────────────────────────────────────────────────────────────────

class User(BaseModel):
    # "age": "30", 30.5 or true are type errors, not coercions
    name: StrictStr = ""
    age:  StrictInt = 0


class UserNotFound(IndexError):
    """Raised by the store when an index does not address a stored user."""


# ── Store ─────────────────────────────────────────────────────────────────────

class UserStore:
    """Ordered list of users shared by all requests.

    Every operation runs under one lock, so the range check and the mutation
    it guards cannot interleave with another request's mutation.
    """

    def __init__(self) -> None:
        self._users: list[User] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def _check(self, index: int) -> None:
        if not 0 <= index < len(self._users):
            raise UserNotFound(index)

    def contains(self, index: int) -> bool:
        with self._lock:
            return 0 <= index < len(self._users)

    def all(self) -> list[User]:
        with self._lock:
            return [u.model_copy() for u in self._users]

    def add(self, user: User) -> User:
        with self._lock:
            self._users.append(user.model_copy())
            return user.model_copy()

    def update(self, index: int, user: User) -> User:
        with self._lock:
            self._check(index)
            current = self._users[index]
            current.name = user.name
            current.age  = user.age
            return current.model_copy()

    def remove(self, index: int) -> User:
        with self._lock:
            self._check(index)
            return self._users.pop(index)

    def clear(self) -> None:
        with self._lock:
            self._users.clear()


store = UserStore()


# ── Internal helpers ──────────────────────────────────────────────────────────

def _user_fields(data):
    """Match keys to User fields ignoring case; a null value leaves the default."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        return data
    fields = {}
    for key, value in data.items():
        name = key.casefold()
        if name in User.model_fields and value is not None:
            fields[name] = value
    return fields


def _parse_user(body: bytes) -> User:
    """Decode a request body into a valid User or raise a 400."""
    try:
        user = User.model_validate(_user_fields(json.loads(body)))
    except (ValueError, RecursionError, ValidationError):
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    if user.name == "" or user.age <= 0:
        raise HTTPException(status_code=400, detail="Invalid user data")
    return user


def _success(user: User) -> dict:
    return {"status": "success", "data": user.model_dump()}


async def _raw_body(request: Request) -> bytes:
    return await request.body()


def _user_index(user_id: str) -> int:
    """Path segment after ``/users/`` as an integer index (may be negative)."""
    digits = user_id.lstrip("+-").lstrip("0")
    # Longer than 19 significant digits cannot fit in a signed 64-bit int
    if not _USER_ID_RE.fullmatch(user_id) or len(digits) > 19:
        raise HTTPException(status_code=400, detail="Invalid user ID")
    index = int(digits or "0")
    if user_id.startswith("-"):
        index = -index
    if not _USER_ID_MIN <= index <= _USER_ID_MAX:
        raise HTTPException(status_code=400, detail="Invalid user ID")
    return index


# ── FastAPI app ───────────────────────────────────────────────────────────────

app = FastAPI(title="User Service", redirect_slashes=False)


@app.middleware("http")
async def cors(request: Request, call_next):
    """Answer pre-flight requests and stamp CORS headers on every response."""
    if request.method == "OPTIONS":
        response = Response(status_code=200)
    else:
        response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(StarletteHTTPException)
async def plain_text_error(request: Request, exc: StarletteHTTPException):
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code,
                             headers=getattr(exc, "headers", None))


@app.get("/users")
def list_users():
    """All users, in insertion order."""
    return [u.model_dump() for u in store.all()]


@app.post("/users", status_code=201)
def create_user(body: bytes = Depends(_raw_body)):
    """Append a new user to the end of the list."""
    user = store.add(_parse_user(body))
    logger.info("Created user %r", user.name)
    return _success(user)


@app.put("/users/{user_id:path}")
def update_user(index: int = Depends(_user_index), body: bytes = Depends(_raw_body)):
    """Overwrite the name and age of the user at ``index``."""
    if not store.contains(index):
        raise HTTPException(status_code=404, detail="User not found")
    payload = _parse_user(body)
    try:
        user = store.update(index, payload)
    except UserNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("Updated user %d", index)
    return _success(user)


@app.delete("/users/{user_id:path}")
def delete_user(index: int = Depends(_user_index)):
    """Remove the user at ``index``; later users move down one place."""
    try:
        user = store.remove(index)
    except UserNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("Deleted user %d (%r)", index, user.name)
    return _success(user)


def user_method_not_allowed(request: Request):
    # The id is validated first: a bad id is a 400 whatever the method.
    _user_index(request.path_params["user_id"])
    raise HTTPException(status_code=405, detail="Method Not Allowed")


# Plain route with no method list: matches every verb PUT and DELETE did not claim
app.add_route("/users/{user_id:path}", user_method_not_allowed, include_in_schema=False)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print(f"Server running at http://localhost:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT)
