from dataclasses import dataclass
from datetime import datetime

OPERATING_ACCOUNT = "Operating Account"


@dataclass(frozen=True)
class Bucket:
    id: int
    name: str
    percentage: float  # 0-100, only the sum is checked
    account: str       # destination account in the journal entry
    color_tag: str = "gray"


@dataclass(frozen=True)
class Allocation:
    bucket_name: str
    percentage: float
    amount: float  # unrounded
    account: str


@dataclass(frozen=True)
class OneTimeCode:
    identity: str
    code: str
    issued_at: datetime
    expires_at: datetime
    attempts: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class Profile:
    identity: str
    buckets: tuple[Bucket, ...]
    updated_at: str  # ISO-8601, UTC


DEFAULT_BUCKETS: tuple[Bucket, ...] = (
    Bucket(id=1, name="Your Bonus", percentage=40, account="Owner Draw", color_tag="pink"),
    Bucket(id=2, name="Taxes", percentage=25, account="Tax Savings Account", color_tag="blue"),
    Bucket(id=3, name="Savings", percentage=15, account="Business Savings", color_tag="purple"),
    Bucket(id=4, name="Reinvestment", percentage=20, account=OPERATING_ACCOUNT, color_tag="orange"),
)
