"""Shared test fixtures."""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from calorie_ledger.config import Settings
from calorie_ledger.containers import AppContainer
from calorie_ledger.domain.errors import IdentityUnavailableError
from calorie_ledger.domain.ledger import Day, LogEntry, Macros, Meal, MealBucket
from calorie_ledger.domain.profile import UserProfile
from calorie_ledger.services.auth import AuthService, IdentityProvider
from calorie_ledger.services.ledger import DayRepository, LedgerService
from calorie_ledger.services.profiles import ProfileRepository, ProfileService
from calorie_ledger.services.vision import VisionClient, VisionService

TEST_TOKEN = "test-access-token"


@dataclass
class InMemoryDayRepository(DayRepository):
    """In-memory day repository with atomic single-day updates."""

    days: dict[tuple[UUID, datetime], Day] = field(default_factory=dict)
    ensure_barrier: threading.Barrier | None = None
    before_write: Callable[[], None] | None = None
    ensure_calls: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def ensure_day(self, user_id: UUID, day_start: datetime) -> bool:
        if self.ensure_barrier is not None:
            self.ensure_barrier.wait(timeout=5)
        with self._lock:
            self.ensure_calls += 1
            key = (user_id, day_start)
            if key in self.days:
                return False
            now = datetime.now(tz=UTC)
            self.days[key] = Day(
                id=str(uuid4()),
                user_id=user_id,
                date=day_start,
                breakfast=MealBucket(),
                lunch=MealBucket(),
                dinner=MealBucket(),
                snacks=MealBucket(),
                totals=Macros.zero(),
                created_at=now,
                updated_at=now,
            )
            return True

    def fetch_day(self, user_id: UUID, day_start: datetime) -> Day | None:
        return self.days.get((user_id, day_start))

    def list_recent_days(self, user_id: UUID, limit: int) -> list[Day]:
        owned = [day for (owner, _), day in self.days.items() if owner == user_id]
        return sorted(owned, key=lambda day: day.date, reverse=True)[:limit]

    def append_log(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        meal: Meal,
        entry: LogEntry,
        delta: Macros,
    ) -> Day | None:
        with self._lock:
            day = self.days.get((user_id, day_start))
            if day is None:
                return None
            bucket = day.bucket(meal)
            updated_bucket = MealBucket(
                logs=[*bucket.logs, entry], totals=bucket.totals + delta
            )
            return self._store(day, meal, updated_bucket, day.totals + delta)

    def mutate_log(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        meal: Meal,
        log_id: UUID,
        expected: Macros,
        fields: dict[str, object],
        delta: Macros,
    ) -> Day | None:
        if self.before_write is not None:
            self.before_write()
        with self._lock:
            day = self.days.get((user_id, day_start))
            if day is None or not _holds(day, meal, log_id, expected):
                return None
            bucket = day.bucket(meal)
            logs = [
                replace(entry, **fields) if entry.id == log_id else entry
                for entry in bucket.logs
            ]
            updated_bucket = MealBucket(logs=logs, totals=bucket.totals + delta)
            return self._store(day, meal, updated_bucket, day.totals + delta)

    def remove_log(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        meal: Meal,
        log_id: UUID,
        expected: Macros,
    ) -> Day | None:
        if self.before_write is not None:
            self.before_write()
        with self._lock:
            day = self.days.get((user_id, day_start))
            if day is None or not _holds(day, meal, log_id, expected):
                return None
            bucket = day.bucket(meal)
            logs = [entry for entry in bucket.logs if entry.id != log_id]
            updated_bucket = MealBucket(logs=logs, totals=bucket.totals - expected)
            return self._store(day, meal, updated_bucket, day.totals - expected)

    def overwrite_totals(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        expected_revision: int,
        bucket_totals: dict[Meal, Macros],
        day_totals: Macros,
    ) -> Day | None:
        if self.before_write is not None:
            self.before_write()
        with self._lock:
            day = self.days.get((user_id, day_start))
            if day is None or day.revision != expected_revision:
                return None
            buckets = {
                meal.value: MealBucket(logs=day.bucket(meal).logs, totals=totals)
                for meal, totals in bucket_totals.items()
            }
            updated = replace(
                day, **buckets, totals=day_totals, revision=day.revision + 1
            )
            self.days[(user_id, day_start)] = updated
            return updated

    def _store(
        self, day: Day, meal: Meal, bucket: MealBucket, totals: Macros
    ) -> Day:
        updated = replace(
            day,
            **{meal.value: bucket},
            totals=totals,
            updated_at=datetime.now(tz=UTC),
            revision=day.revision + 1,
        )
        self.days[(day.user_id, day.date)] = updated
        return updated


def _holds(day: Day, meal: Meal, log_id: UUID, expected: Macros) -> bool:
    entry = day.find_log(meal, log_id)
    return entry is not None and entry.macros == expected


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile repository for tests."""

    profiles: dict[UUID, UserProfile] = field(default_factory=dict)

    def get_profile(self, user_id: UUID) -> UserProfile | None:
        return self.profiles.get(user_id)

    def update_profile(
        self, user_id: UUID, changes: dict[str, object]
    ) -> UserProfile | None:
        current = self.profiles.get(user_id)
        if current is None:
            return None
        updated = replace(current, **changes)
        self.profiles[user_id] = updated
        return updated


@dataclass
class FakeIdentityProvider(IdentityProvider):
    """Identity provider resolving a fixed set of tokens."""

    tokens: dict[str, UUID] = field(default_factory=dict)
    unavailable: bool = False

    def resolve(self, token: str) -> UUID | None:
        if self.unavailable:
            raise IdentityUnavailableError("Identity provider unavailable")
        return self.tokens.get(token)


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "name": "Chicken salad",
            "ccal": 420,
            "protein": 35,
            "fat": 18,
            "carbohydrates": 22,
        }
    )
    calls: list[dict[str, object]] = field(default_factory=list)

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.calls.append({"model": model, "image_data_url": image_data_url})
        return self.payload


def build_ledger_service(
    repository: InMemoryDayRepository | None = None,
    profiles: InMemoryProfileRepository | None = None,
) -> LedgerService:
    return LedgerService(
        repository=repository or InMemoryDayRepository(),
        profile_service=ProfileService(profiles or InMemoryProfileRepository()),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key=(
            "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9."
            "eyJyb2xlIjoic2VydmljZV9yb2xlIn0."
            "c2lnbmF0dXJl"
        ),
        openai_api_key="openai-key",
        read_retry_backoff_seconds=0,
    )


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def profile_repository(user_id: UUID) -> InMemoryProfileRepository:
    return InMemoryProfileRepository(
        profiles={user_id: UserProfile(id=user_id, email="user@example.com")}
    )


@pytest.fixture
def day_repository() -> InMemoryDayRepository:
    return InMemoryDayRepository()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_TOKEN}"}


@pytest.fixture
def container(
    settings: Settings,
    user_id: UUID,
    profile_repository: InMemoryProfileRepository,
    day_repository: InMemoryDayRepository,
) -> AppContainer:
    profile_service = ProfileService(profile_repository)
    ledger_service = LedgerService(
        repository=day_repository,
        profile_service=profile_service,
        edit_conflict_retries=settings.edit_conflict_retries,
    )
    vision_service = VisionService(
        client=FakeVisionClient(),
        model=settings.openai_model,
        reasoning_effort=settings.openai_reasoning_effort,
        store=settings.openai_store,
    )
    auth_service = AuthService(FakeIdentityProvider(tokens={TEST_TOKEN: user_id}))

    async def open_resources() -> None:
        return None

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        auth_service=auth_service,
        profile_service=profile_service,
        ledger_service=ledger_service,
        vision_service=vision_service,
        open_resources=open_resources,
        close_resources=close_resources,
    )
