"""Storage backends for profiles and pending one-time codes.

Two interchangeable backends share one async interface:

* ``memory``: dicts owned by the store instance, gone when the run ends.
* ``json``: one JSON document per record type under the data directory,
  standing in for a row-per-user table. File access runs in a worker thread.

Profile stores expose ``get(identity) -> Maybe[Profile]`` and
``upsert(identity, buckets) -> Either[ProfileSaveFailed, Profile]``; code
stores expose ``get``, ``put`` and ``delete`` and raise ``CodeStoreUnavailable``
when the backing file cannot be read or written. Upserts are last-write-wins.
"""
import asyncio
import json
import logging
import os
import tempfile
import threading
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from profitplan.config import Settings
from profitplan.domain import Bucket, OneTimeCode, Profile
from profitplan.errors import CodeStoreUnavailable, ProfileSaveFailed
from profitplan.functional import Either, Left, Maybe, Right, maybe

logger = logging.getLogger(__name__)

PROFILES_FILE = "profiles.json"
CODES_FILE = "pending_codes.json"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def profile_to_dict(profile: Profile) -> dict:
    return {
        "identity": profile.identity,
        "buckets": [asdict(b) for b in profile.buckets],
        "updated_at": profile.updated_at,
    }


def profile_from_dict(data: dict) -> Profile:
    return Profile(
        identity=data["identity"],
        buckets=tuple(Bucket(**b) for b in data.get("buckets", [])),
        updated_at=data.get("updated_at", ""),
    )


def code_to_dict(code: OneTimeCode) -> dict:
    return {
        "identity": code.identity,
        "code": code.code,
        "issued_at": code.issued_at.isoformat(),
        "expires_at": code.expires_at.isoformat(),
        "attempts": code.attempts,
    }


def code_from_dict(data: dict) -> OneTimeCode:
    return OneTimeCode(
        identity=data["identity"],
        code=data["code"],
        issued_at=datetime.fromisoformat(data["issued_at"]),
        expires_at=datetime.fromisoformat(data["expires_at"]),
        attempts=int(data.get("attempts", 0)),
    )


class MemoryProfileStore:
    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._rows: dict[str, Profile] = {}
        self._clock = clock

    async def get(self, identity: str) -> Maybe[Profile]:
        row = self._rows.get(identity)
        return maybe(row)

    async def upsert(self, identity: str, buckets: tuple[Bucket, ...]) -> Either[ProfileSaveFailed, Profile]:
        profile = Profile(identity, tuple(buckets), self._clock().isoformat())
        self._rows[identity] = profile
        return Right(profile)


class MemoryCodeStore:
    def __init__(self):
        self._rows: dict[str, OneTimeCode] = {}

    async def get(self, identity: str) -> Maybe[OneTimeCode]:
        row = self._rows.get(identity)
        return maybe(row)

    async def put(self, code: OneTimeCode) -> None:
        self._rows[code.identity] = code

    async def delete(self, identity: str) -> None:
        self._rows.pop(identity, None)


_DOC_LOCKS: dict[str, threading.Lock] = {}
_DOC_LOCKS_GUARD = threading.Lock()


def document_lock(path: Path) -> threading.Lock:
    """One lock per resolved file path, shared by every store on that file."""
    key = str(Path(path).resolve())
    with _DOC_LOCKS_GUARD:
        return _DOC_LOCKS.setdefault(key, threading.Lock())


class JsonDocument:
    """A whole-file JSON object keyed by identity.

    Each ``set`` is a read-modify-write of the whole file held under the
    path's lock, and the new contents land through a uniquely named temp
    file followed by ``os.replace``.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = document_lock(self.path)

    def read(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.path.parent,
            prefix=self.path.name + ".", suffix=".tmp", delete=False,
        ) as tmp:
            json.dump(data, tmp, indent=2, sort_keys=True)
        try:
            os.replace(tmp.name, self.path)
        except OSError:
            os.unlink(tmp.name)
            raise

    def _read_locked(self) -> dict:
        with self._lock:
            return self.read()

    async def get(self, key: str):
        data = await asyncio.to_thread(self._read_locked)
        return data.get(key)

    async def set(self, key: str, value) -> None:
        def _update():
            with self._lock:
                data = self.read()
                if value is None:
                    data.pop(key, None)
                else:
                    data[key] = value
                self.write(data)

        await asyncio.to_thread(_update)


class JsonProfileStore:
    def __init__(self, data_dir: Path, clock: Callable[[], datetime] = utc_now):
        self._doc = JsonDocument(Path(data_dir) / PROFILES_FILE)
        self._clock = clock

    async def get(self, identity: str) -> Maybe[Profile]:
        row = await self._doc.get(identity)
        return maybe(row).map(profile_from_dict)

    async def upsert(self, identity: str, buckets: tuple[Bucket, ...]) -> Either[ProfileSaveFailed, Profile]:
        profile = Profile(identity, tuple(buckets), self._clock().isoformat())
        try:
            await self._doc.set(identity, profile_to_dict(profile))
        except (OSError, ValueError) as e:
            logger.warning("profile upsert failed for %s: %s", identity, e)
            return Left(ProfileSaveFailed(identity=identity, reason=str(e)))
        return Right(profile)


class JsonCodeStore:
    def __init__(self, data_dir: Path):
        self._doc = JsonDocument(Path(data_dir) / CODES_FILE)

    async def get(self, identity: str) -> Maybe[OneTimeCode]:
        try:
            row = await self._doc.get(identity)
            return maybe(row).map(code_from_dict)
        except (OSError, ValueError, KeyError) as e:
            raise self._unavailable("read", identity, e) from e

    async def put(self, code: OneTimeCode) -> None:
        try:
            await self._doc.set(code.identity, code_to_dict(code))
        except (OSError, ValueError) as e:
            raise self._unavailable("write", code.identity, e) from e

    async def delete(self, identity: str) -> None:
        try:
            await self._doc.set(identity, None)
        except (OSError, ValueError) as e:
            raise self._unavailable("delete", identity, e) from e

    def _unavailable(self, action: str, identity: str, e: Exception) -> CodeStoreUnavailable:
        logger.warning("code store %s failed for %s: %s", action, identity, e)
        return CodeStoreUnavailable(identity=identity, reason=str(e))


def create_stores(settings: Settings, clock: Callable[[], datetime] = utc_now):
    """Return ``(code_store, profile_store)`` for the configured backend."""
    if settings.storage == "memory":
        return MemoryCodeStore(), MemoryProfileStore(clock)
    return JsonCodeStore(settings.data_dir), JsonProfileStore(settings.data_dir, clock)
