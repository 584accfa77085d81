# tracker/services.py
import logging
from typing import Optional

from django.conf import settings
from django.db import transaction
from rest_framework.exceptions import PermissionDenied

from realtime.events import EventBus
from realtime.messages import LiveActivity, Notification

from .models import ActivityType, UserActivity
from .store import ActivityStore, ScoreChange, serialize_feed_record

log = logging.getLogger(__name__)


class ActivityIngestion:
    """
    Create/update/delete activity records and keep the actor's score in step.

    Scores only ever move by a delta (the activity weight, or the weight
    difference on a type change) applied as an atomic increment at the store.
    Creation also feeds the live broadcast and the two notification rules:

    - milestone: fires once, on the write that takes the score from below
      NOTIFICATION_SCORE_THRESHOLD to at-or-above it;
    - opportunity: fires for any single activity whose weight is at least
      HIGH_IMPACT_ACTIVITY_WEIGHT.
    """

    def __init__(
        self,
        store: Optional[ActivityStore] = None,
        bus: Optional[EventBus] = None,
        threshold: Optional[int] = None,
        high_impact_weight: Optional[int] = None,
    ):
        self.store = store or ActivityStore()
        self.bus = bus or EventBus()
        self.threshold = (
            threshold if threshold is not None
            else getattr(settings, "NOTIFICATION_SCORE_THRESHOLD", 100)
        )
        self.high_impact_weight = (
            high_impact_weight if high_impact_weight is not None
            else getattr(settings, "HIGH_IMPACT_ACTIVITY_WEIGHT", 8)
        )

    # -------- create --------
    def create(self, user_id: int, property_id: int, activity_id: int, **fields) -> UserActivity:
        self.store.find_property_by_id(property_id)
        activity_type = self.store.find_activity_type_by_id(activity_id)

        with transaction.atomic():
            record = self.store.create_activity_record(user_id, property_id, activity_id, **fields)
            change = self.store.increment_user_score(user_id, activity_type.weight)

        self._announce(record, activity_type, change)
        return record

    # -------- update --------
    def update(self, record_id: int, acting_user_id: int, **changes) -> UserActivity:
        property_id = changes.get("property_id")
        if property_id:
            self.store.find_property_by_id(property_id)
        activity_id = changes.get("activity_id")
        new_type = self.store.find_activity_type_by_id(activity_id) if activity_id else None

        # weight delta comes from the locked row, never from an earlier read
        with transaction.atomic():
            locked = self.store.lock_activity_record(record_id)
            if locked.user_id != acting_user_id:
                raise PermissionDenied("You can only update your own activities")
            delta = 0
            if new_type is not None and new_type.pk != locked.activity_id:
                delta = new_type.weight - locked.activity.weight
            updated = self.store.update_activity_record(record_id, **changes)
            if delta:
                self.store.increment_user_score(locked.user_id, delta)
        return updated

    # -------- delete --------
    def delete(self, record_id: int, acting_user_id: int) -> UserActivity:
        with transaction.atomic():
            locked = self.store.lock_activity_record(record_id)
            if locked.user_id != acting_user_id:
                raise PermissionDenied("You can only delete your own activities")
            # raises RecordNotFound if a concurrent delete got there first
            self.store.delete_activity_record(record_id)
            if locked.activity.weight:
                self.store.increment_user_score(locked.user_id, -locked.activity.weight)
        return locked

    # -------- side effects --------
    def notifications_for(self, actor_name: str, user_id: int, activity_type: ActivityType, change: ScoreChange):
        notes = []
        if change.crossed(self.threshold):
            notes.append(Notification(
                f"{actor_name} reached {self.threshold} points!",
                {"userId": user_id, "score": change.current},
                type="success",
            ))
        if activity_type.weight >= self.high_impact_weight:
            notes.append(Notification(
                f"{actor_name} had an opportunity!",
                {"userId": user_id, "activityName": activity_type.name, "weight": activity_type.weight},
                type="info",
            ))
        return notes

    def _announce(self, record: UserActivity, activity_type: ActivityType, change: ScoreChange) -> None:
        messages = [LiveActivity(serialize_feed_record(record))]
        messages += self.notifications_for(record.user.display_name, record.user_id, activity_type, change)
        # the record is committed; a broken fan-out must not fail the request
        for message in messages:
            try:
                self.bus.publish(message)
            except Exception:
                log.exception("broadcast of %s for activity %s failed", message.event, record.pk)
