"""Passwordless sign-in with one-time codes.

The flow is an explicit state machine::

    AwaitingEmail --request_code--> CodeSent(email) --verified--> Authenticated(identity)
          ^                              |                              |
          +--- restart / missing code ---+                              |
          +--- expired code / attempts exhausted                        |
          +----------------------------- sign_out ----------------------+

A wrong code keeps ``CodeSent`` so the user can retry until the code
expires. Deep links carrying ``email`` and ``code`` go through the same
verification as typed codes.
"""
import logging
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Mapping, Optional, Union

from profitplan.config import Settings
from profitplan.delivery import parse_magic_link
from profitplan.domain import OneTimeCode
from profitplan.errors import (
    CodeExpired,
    CodeMismatch,
    InvalidEmail,
    InvalidTransition,
    NoPendingCode,
    TooManyAttempts,
)
from profitplan.events import CODE_ISSUED, SESSION_CHANGED, EventBus
from profitplan.export import DEFAULT_MEMO
from profitplan.services import PlanSession, ProfileService
from profitplan.store import create_stores, utc_now

logger = logging.getLogger(__name__)

CODE_TTL = timedelta(minutes=15)


@dataclass(frozen=True)
class AwaitingEmail:
    pass


@dataclass(frozen=True)
class CodeSent:
    email: str


@dataclass(frozen=True)
class Authenticated:
    identity: str


AuthState = Union[AwaitingEmail, CodeSent, Authenticated]

TRANSITIONS: dict[tuple[type, str], type] = {
    (AwaitingEmail, "request_code"): CodeSent,
    (CodeSent, "request_code"): CodeSent,
    (AwaitingEmail, "code_entered"): CodeSent,
    (CodeSent, "code_entered"): CodeSent,
    (CodeSent, "restart"): AwaitingEmail,
    (CodeSent, "code_missing"): AwaitingEmail,
    (CodeSent, "code_expired"): AwaitingEmail,
    (CodeSent, "attempts_exhausted"): AwaitingEmail,
    (CodeSent, "code_rejected"): CodeSent,
    (CodeSent, "verified"): Authenticated,
    (Authenticated, "sign_out"): AwaitingEmail,
}


def generate_code() -> str:
    return str(secrets.randbelow(900000) + 100000)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class AuthSession:
    """Owns the sign-in state, pending codes and the signed-in workspace.

    codes: async code store (``get``/``put``/``delete``)
    profiles: ProfileService used to open and persist bucket sets
    delivery: object with ``send(identity, code)``; failures are only logged
    """

    def __init__(
        self,
        codes,
        profiles: ProfileService,
        delivery,
        clock: Callable[[], datetime] = utc_now,
        code_ttl: timedelta = CODE_TTL,
        max_attempts: int = 0,
        bus: Optional[EventBus] = None,
        code_factory: Callable[[], str] = generate_code,
        default_memo: str = DEFAULT_MEMO,
    ):
        self.codes = codes
        self.profiles = profiles
        self.delivery = delivery
        self.clock = clock
        self.code_ttl = code_ttl
        self.max_attempts = max_attempts
        self.bus = bus or EventBus()
        self.code_factory = code_factory
        self.default_memo = default_memo
        self.state: AuthState = AwaitingEmail()
        self.session: Optional[PlanSession] = None

    @classmethod
    def from_settings(cls, settings: Settings, delivery, clock: Callable[[], datetime] = utc_now) -> "AuthSession":
        bus = EventBus()
        codes, profile_store = create_stores(settings, clock)
        return cls(
            codes,
            ProfileService(profile_store, bus),
            delivery,
            clock=clock,
            code_ttl=timedelta(minutes=settings.code_ttl_minutes),
            max_attempts=settings.max_code_attempts,
            bus=bus,
            default_memo=settings.default_memo,
        )

    def _fire(self, event: str, **fields) -> AuthState:
        target = TRANSITIONS.get((type(self.state), event))
        if target is None:
            raise InvalidTransition(state=type(self.state).__name__, event=event)
        self.state = target(**fields)
        return self.state

    # -- provider interface

    def get_current_session(self) -> Optional[str]:
        if isinstance(self.state, Authenticated):
            return self.state.identity
        return None

    def on_session_change(self, callback: Callable[[Optional[str]], object]):
        """Call ``callback(identity_or_None)`` on every sign-in and sign-out."""

        def handler(event, payload):
            return callback(payload.get("identity"))

        self.bus.subscribe(SESSION_CHANGED, handler)
        return handler

    # -- transitions

    async def request_code(self, email: str) -> OneTimeCode:
        email = normalize_email(email)
        if "@" not in email:
            raise InvalidEmail(email=email)
        if isinstance(self.state, Authenticated):
            raise InvalidTransition(state="Authenticated", event="request_code")

        issued_at = self.clock()
        pending = OneTimeCode(
            identity=email,
            code=self.code_factory(),
            issued_at=issued_at,
            expires_at=issued_at + self.code_ttl,
        )
        await self.codes.put(pending)
        self._fire("request_code", email=email)
        logger.info("issued sign-in code for %s, expires %s", email, pending.expires_at.isoformat())

        try:
            self.delivery.send(email, pending.code)
        except Exception:
            logger.exception("code delivery failed for %s", email)
        self.bus.publish(CODE_ISSUED, {"identity": email, "expires_at": pending.expires_at.isoformat()})
        return pending

    async def verify_code(self, email: str, submitted_code) -> PlanSession:
        email = normalize_email(email)
        submitted = str(submitted_code or "").strip()
        self._fire("code_entered", email=email)

        found = await self.codes.get(email)
        if found.is_none():
            self._fire("code_missing")
            raise NoPendingCode(email=email)
        pending = found.get_or_else(None)

        if pending.is_expired(self.clock()):
            await self.codes.delete(email)
            self._fire("code_expired")
            logger.info("expired sign-in code removed for %s", email)
            raise CodeExpired(email=email)

        if not secrets.compare_digest(pending.code.encode(), submitted.encode()):
            await self._reject(pending)

        await self.codes.delete(email)
        loaded = await self.profiles.open(email)
        self.session = PlanSession(email, loaded.buckets, loaded.status, self.default_memo)
        self._fire("verified", identity=email)
        logger.info("signed in %s", email)
        self.bus.publish(SESSION_CHANGED, {"identity": email})
        return self.session

    async def _reject(self, pending: OneTimeCode) -> None:
        if self.max_attempts:
            attempts = pending.attempts + 1
            if attempts >= self.max_attempts:
                await self.codes.delete(pending.identity)
                self._fire("attempts_exhausted")
                logger.warning("too many invalid codes for %s", pending.identity)
                raise TooManyAttempts(email=pending.identity, attempts=attempts)
            await self.codes.put(replace(pending, attempts=attempts))
        self._fire("code_rejected", email=pending.identity)
        raise CodeMismatch(email=pending.identity)

    async def verify_link(self, params: Mapping[str, object]) -> Optional[PlanSession]:
        """Verify a deep link's query parameters; ``None`` when it carries no code."""
        parsed = parse_magic_link(params)
        if parsed is None:
            return None
        email, code = parsed
        return await self.verify_code(email, code)

    def restart(self) -> None:
        self._fire("restart")

    async def save_buckets(self):
        if self.session is None:
            raise InvalidTransition(state=type(self.state).__name__, event="save")
        result = await self.profiles.save(self.session.identity, self.session.buckets)
        self.session.status = (
            "Bucket configuration saved." if result.is_right() else result.get_error().message
        )
        return result

    async def sign_out(self):
        """Persist the bucket set, then drop the workspace; returns the save outcome."""
        if self.session is None:
            raise InvalidTransition(state=type(self.state).__name__, event="sign_out")
        identity = self.session.identity
        result = await self.profiles.save(identity, self.session.buckets)
        if result.is_left():
            logger.warning("buckets not saved on sign-out for %s", identity)

        self.session = None
        self._fire("sign_out")
        logger.info("signed out %s", identity)
        self.bus.publish(SESSION_CHANGED, {"identity": None})
        return result
