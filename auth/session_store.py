from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from pathlib import Path


@dataclass
class CachedUser:
    id: int
    username: str
    role: str
    hostel_id: int | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "CachedUser":
        if not isinstance(payload, dict):
            raise RuntimeError("User payload must be a JSON object.")
        user_id = payload.get("id")
        username = payload.get("username")
        role = payload.get("role")
        hostel_id = payload.get("hostelId", payload.get("hostel_id"))

        if not isinstance(user_id, int):
            raise RuntimeError("User payload missing id.")
        if not isinstance(username, str) or not username:
            raise RuntimeError("User payload missing username.")
        if not isinstance(role, str) or not role:
            raise RuntimeError("User payload missing role.")
        if hostel_id is not None and not isinstance(hostel_id, int):
            raise RuntimeError("User payload hostelId must be an integer.")

        return cls(id=user_id, username=username, role=role, hostel_id=hostel_id)


class SessionStore(ABC):
    @abstractmethod
    async def get(self) -> CachedUser | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, user: CachedUser) -> None:
        raise NotImplementedError

    @abstractmethod
    async def clear(self) -> None:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._user: CachedUser | None = None

    async def get(self) -> CachedUser | None:
        return self._user

    async def set(self, user: CachedUser) -> None:
        self._user = user

    async def clear(self) -> None:
        self._user = None


class FileSessionStore(SessionStore):
    def __init__(self, path: str | Path = ".hms_session.json") -> None:
        self._path = Path(path)

    async def get(self) -> CachedUser | None:
        if not self._path.exists():
            return None
        try:
            return CachedUser.from_payload(json.loads(self._path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, RuntimeError):
            # An unreadable cache is the same as no cached user.
            self._path.unlink()
            return None

    async def set(self, user: CachedUser) -> None:
        self._write(asdict(user))

    async def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()

    def _write(self, payload: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f"{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        tmp_path = Path(tmp_name)

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
