import logging
from typing import Mapping, NamedTuple, Optional
from urllib.parse import urlencode

logger = logging.getLogger(__name__)


class OutgoingCode(NamedTuple):
    identity: str
    code: str
    link: str


def build_magic_link(base_url: str, identity: str, code: str) -> str:
    return f"{base_url.rstrip('/')}/?{urlencode({'code': code, 'email': identity})}"


def parse_magic_link(params: Mapping[str, object]) -> Optional[tuple[str, str]]:
    """Pull ``(email, code)`` out of deep-link query parameters, if both are present."""

    def first(key: str) -> str:
        value = params.get(key)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        return str(value).strip() if value else ""

    email, code = first("email"), first("code")
    if not email or not code:
        return None
    return email, code


class LoggingDelivery:
    """Demo transport: writes the code and magic link to the log instead of mailing it."""

    def __init__(self, base_url: str):
        self.base_url = base_url

    def send(self, identity: str, code: str) -> None:
        link = build_magic_link(self.base_url, identity, code)
        logger.info("DEMO MODE magic code for %s: %s (%s)", identity, code, link)


class OutboxDelivery(LoggingDelivery):
    """Keeps every message so a demo UI can show it to the user."""

    def __init__(self, base_url: str):
        super().__init__(base_url)
        self.sent: list[OutgoingCode] = []

    def send(self, identity: str, code: str) -> None:
        super().send(identity, code)
        self.sent.append(OutgoingCode(identity, code, build_magic_link(self.base_url, identity, code)))

    def last_for(self, identity: str) -> Optional[OutgoingCode]:
        for message in reversed(self.sent):
            if message.identity == identity:
                return message
        return None
