"""
ActivityStore: the relational collaborator behind the realtime subsystem and
the ingestion service. Every operation is a plain synchronous ORM call;
`AsyncActivityStore` exposes the same surface to the event loop.

Missing rows raise `RecordNotFound`; database connectivity problems surface
as Django's `DatabaseError` family and are left to the caller.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Any, Dict, List, Optional

from channels.db import database_sync_to_async
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, F
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .exceptions import AccountInactive, RecordNotFound
from .models import ActivityType, Property, UserActivity
from .serializers import ActivityFeedSerializer, OnlineUserSerializer
from .status import AccountStatus, Presence, UserRole, UserStatus

User = get_user_model()

FEED_RELATIONS = ("user", "property", "activity")


@dataclass(frozen=True)
class ScoreChange:
    previous: int
    current: int

    def crossed(self, threshold: int) -> bool:
        """True only on the write that moves the score from below to at-or-above."""
        return self.previous < threshold <= self.current


@dataclass
class ActivityFilters:
    user_id: Optional[int] = None
    activity_id: Optional[int] = None
    after: Optional[datetime] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


def _positive_int(raw) -> Optional[int]:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _aware(dt: datetime) -> datetime:
    return timezone.make_aware(dt) if timezone.is_naive(dt) else dt


def _parse_moment(raw, end_of_day: bool = False) -> Optional[datetime]:
    if not raw:
        return None
    try:
        d = parse_date(raw)
        if d is not None:
            return _aware(datetime.combine(d, time.max if end_of_day else time.min))
        dt = parse_datetime(raw)
    except ValueError:
        return None
    return _aware(dt) if dt is not None else None


def parse_activity_filters(params) -> ActivityFilters:
    """Lenient query-string parsing: malformed values are ignored, not rejected."""
    return ActivityFilters(
        user_id=_positive_int(params.get("userId")),
        activity_id=_positive_int(params.get("activityId")),
        after=_parse_moment(params.get("afterTimestamp")),
        date_from=_parse_moment(params.get("dateFrom")),
        date_to=_parse_moment(params.get("dateTo"), end_of_day=True),
    )


def serialize_feed_record(record: UserActivity) -> Dict[str, Any]:
    return dict(ActivityFeedSerializer(record).data)


class ActivityStore:

    # ---- users ----
    def find_user_by_id(self, user_id: int):
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            raise RecordNotFound("User", user_id)

    def find_user_by_email(self, email: str):
        user = User.objects.filter(email=email).exclude(account_status=AccountStatus.DELETED).first()
        if user is None:
            raise RecordNotFound("User", email)
        return user

    def find_session_presence(self, user_id: int) -> Presence:
        """Presence of a user allowed to hold a live session."""
        user = self.find_user_by_id(user_id)
        if not user.is_account_active:
            raise AccountInactive(user_id, user.account_status)
        return user.presence

    def update_user_status(self, user_id: int, presence: Presence) -> None:
        updated = User.objects.filter(pk=user_id).update(
            status=presence.status, last_seen=presence.last_seen
        )
        if not updated:
            raise RecordNotFound("User", user_id)

    def increment_user_score(self, user_id: int, delta: int) -> ScoreChange:
        with transaction.atomic():
            row = (
                User.objects.select_for_update()
                .filter(pk=user_id)
                .values_list("score", flat=True)
                .first()
            )
            if row is None:
                raise RecordNotFound("User", user_id)
            User.objects.filter(pk=user_id).update(score=F("score") + delta)
        return ScoreChange(previous=row, current=row + delta)

    def list_online_users(self) -> List[Dict[str, Any]]:
        qs = User.objects.filter(status=UserStatus.ONLINE).order_by("id")
        return [dict(row) for row in OnlineUserSerializer(qs, many=True).data]

    # ---- reference data ----
    def find_property_by_id(self, property_id: int) -> Property:
        try:
            return Property.objects.get(pk=property_id)
        except Property.DoesNotExist:
            raise RecordNotFound("Property", property_id)

    def find_activity_type_by_id(self, activity_type_id: int) -> ActivityType:
        try:
            return ActivityType.objects.get(pk=activity_type_id)
        except ActivityType.DoesNotExist:
            raise RecordNotFound("Activity", activity_type_id)

    # ---- activity records ----
    def find_activity_record_by_id(self, record_id: int) -> UserActivity:
        try:
            return UserActivity.objects.select_related(*FEED_RELATIONS).get(pk=record_id)
        except UserActivity.DoesNotExist:
            raise RecordNotFound("UserActivity", record_id)

    def create_activity_record(self, user_id: int, property_id: int, activity_id: int, **fields) -> UserActivity:
        record = UserActivity.objects.create(
            user_id=user_id, property_id=property_id, activity_id=activity_id, **fields
        )
        return self.find_activity_record_by_id(record.pk)

    def update_activity_record(self, record_id: int, **fields) -> UserActivity:
        updated = UserActivity.objects.filter(pk=record_id).update(updated_at=timezone.now(), **fields)
        if not updated:
            raise RecordNotFound("UserActivity", record_id)
        return self.find_activity_record_by_id(record_id)

    def lock_activity_record(self, record_id: int) -> UserActivity:
        """Row-locked read; call inside transaction.atomic()."""
        try:
            return (
                UserActivity.objects.select_for_update(of=("self",))
                .select_related("activity")
                .get(pk=record_id)
            )
        except UserActivity.DoesNotExist:
            raise RecordNotFound("UserActivity", record_id)

    def delete_activity_record(self, record_id: int) -> int:
        deleted, _ = UserActivity.objects.filter(pk=record_id).delete()
        if not deleted:
            raise RecordNotFound("UserActivity", record_id)
        return deleted

    def find_activity_records_after(self, moment: datetime) -> List[Dict[str, Any]]:
        qs = (
            UserActivity.objects.select_related(*FEED_RELATIONS)
            .filter(created_at__gt=moment)
            .order_by("created_at", "id")
        )
        return [serialize_feed_record(r) for r in qs]

    def find_activity_records_by_user(self, user_id: int):
        return (
            UserActivity.objects.select_related(*FEED_RELATIONS)
            .filter(user_id=user_id)
            .order_by("-created_at")
        )

    def filter_activity_records(self, filters: ActivityFilters):
        qs = UserActivity.objects.select_related(*FEED_RELATIONS)
        if filters.user_id:
            qs = qs.filter(user_id=filters.user_id)
        if filters.activity_id:
            qs = qs.filter(activity_id=filters.activity_id)
        if filters.after:
            qs = qs.filter(created_at__gt=filters.after)
        if filters.date_from:
            qs = qs.filter(created_at__gte=filters.date_from)
        if filters.date_to:
            qs = qs.filter(created_at__lte=filters.date_to)
        limit = getattr(settings, "MAX_ACTIVITIES_PER_QUERY", 1000)
        return qs.order_by("-created_at")[:limit]

    # ---- dashboard aggregates ----
    def stats(self) -> Dict[str, Any]:
        recent = UserActivity.objects.select_related(*FEED_RELATIONS).order_by("-created_at")[:10]
        return {
            "totalUsers": User.objects.count(),
            "onlineUsers": User.objects.filter(status=UserStatus.ONLINE).count(),
            "totalActivities": UserActivity.objects.count(),
            "totalProperties": Property.objects.count(),
            "recentActivities": [serialize_feed_record(r) for r in recent],
        }

    def leaderboard(self, limit: int = 20) -> List[Dict[str, Any]]:
        qs = (
            User.objects.filter(role=UserRole.SALES_REP)
            .annotate(activities_count=Count("activities"))
            .order_by("-score", "id")[:limit]
        )
        return [
            {
                "id": u.id,
                "name": u.display_name,
                "email": u.email,
                "score": u.score,
                "activitiesCount": u.activities_count,
            }
            for u in qs
        ]


class AsyncActivityStore:
    """Event-loop facing view of an ActivityStore; each call runs in a DB thread."""

    def __init__(self, store: Optional[ActivityStore] = None):
        self.store = store or ActivityStore()

    async def find_session_presence(self, user_id: int) -> Presence:
        return await database_sync_to_async(self.store.find_session_presence)(user_id)

    async def update_user_status(self, user_id: int, presence: Presence) -> None:
        await database_sync_to_async(self.store.update_user_status)(user_id, presence)

    async def find_activity_records_after(self, moment: datetime) -> List[Dict[str, Any]]:
        return await database_sync_to_async(self.store.find_activity_records_after)(moment)

    async def list_online_users(self) -> List[Dict[str, Any]]:
        return await database_sync_to_async(self.store.list_online_users)()

