import logging
from datetime import date
from typing import Any, NamedTuple, Optional

from profitplan import buckets as bucket_ops
from profitplan.allocation import allocate, check_allocation_gate, total_allocated
from profitplan.domain import Allocation, Bucket, Profile
from profitplan.errors import ProfileLoadFailed, ProfileSaveFailed
from profitplan.events import PROFILE_SAVED, EventBus
from profitplan.export import DEFAULT_MEMO, ExportFile, journal_file, report_file
from profitplan.functional import Either, Left, Right

logger = logging.getLogger(__name__)


class ProfileLoad(NamedTuple):
    buckets: tuple[Bucket, ...]
    status: Optional[str]  # user-facing note, None when nothing to report


class ProfileService:
    """Facade over an injected profile store.

    store: object with async ``get(identity) -> Maybe[Profile]`` and
    ``upsert(identity, buckets) -> Either[ProfileSaveFailed, Profile]``.
    """

    def __init__(self, store, bus: Optional[EventBus] = None):
        self.store = store
        self.bus = bus

    async def open(self, identity: str) -> ProfileLoad:
        """Load the identity's buckets, creating a default profile on first sign-in.

        A failing store never blocks sign-in: the defaults are returned with
        a status message instead.
        """
        try:
            found = await self.store.get(identity)
        except Exception as e:
            err = ProfileLoadFailed(identity=identity, reason=str(e))
            logger.warning("%s (%s)", err, e)
            return ProfileLoad(bucket_ops.default_buckets(), err.message)

        if found.is_some():
            return ProfileLoad(found.get_or_else(None).buckets, None)

        defaults = bucket_ops.default_buckets()
        created = await self.save(identity, defaults)
        if created.is_left():
            return ProfileLoad(defaults, created.get_error().message)
        logger.info("created default profile for %s", identity)
        return ProfileLoad(defaults, None)

    async def save(self, identity: str, buckets: tuple[Bucket, ...]) -> Either[ProfileSaveFailed, Profile]:
        try:
            result = await self.store.upsert(identity, buckets)
        except Exception as e:
            logger.warning("profile save failed for %s: %s", identity, e)
            return Left(ProfileSaveFailed(identity=identity, reason=str(e)))

        if result.is_right() and self.bus is not None:
            self.bus.publish(PROFILE_SAVED, {"identity": identity, "buckets": len(buckets)})
        return result


class PlanSession:
    """Live workspace of one signed-in identity.

    Bucket edits are held here until saved; allocations are recomputed on
    ``calculate`` and go stale after edits, same as the page shows them.
    """

    def __init__(
        self,
        identity: str,
        buckets: tuple[Bucket, ...],
        status: Optional[str] = None,
        default_memo: str = DEFAULT_MEMO,
    ):
        self.identity = identity
        self.buckets = tuple(buckets)
        self.status = status
        self.default_memo = default_memo
        self.profit_text = ""
        self.notes = ""
        self.allocations: tuple[Allocation, ...] = ()

    def add_bucket(self) -> Bucket:
        self.buckets = bucket_ops.add_bucket(self.buckets)
        return self.buckets[-1]

    def update_bucket(self, bucket_id: int, field: str, value: Any) -> None:
        self.buckets = bucket_ops.update_bucket(self.buckets, bucket_id, field, value)

    def delete_bucket(self, bucket_id: int) -> None:
        self.buckets = bucket_ops.delete_bucket(self.buckets, bucket_id)

    @property
    def total_percentage(self) -> float:
        return bucket_ops.total_percentage(self.buckets)

    @property
    def total_allocated(self) -> float:
        return total_allocated(self.allocations)

    def can_allocate(self) -> bool:
        return check_allocation_gate(self.buckets, self.profit_text).is_right()

    def calculate(self) -> Either[dict, tuple[Allocation, ...]]:
        gate = check_allocation_gate(self.buckets, self.profit_text)
        if gate.is_left():
            return gate
        self.allocations = allocate(gate.get_or_else(0.0), self.buckets)
        return Right(self.allocations)

    def journal_file(self, today: Optional[date] = None) -> ExportFile:
        return journal_file(self.allocations, self.notes, today, self.default_memo)

    def report_file(self, today: Optional[date] = None) -> ExportFile:
        return report_file(self.allocations, self.profit_text, self.identity, self.notes, today)
