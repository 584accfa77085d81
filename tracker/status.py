# tracker/status.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from django.db import models


class UserStatus(models.TextChoices):
    ONLINE = "ONLINE", "Online"
    OFFLINE = "OFFLINE", "Offline"


class UserRole(models.TextChoices):
    SALES_REP = "SALES_REP", "Sales rep"
    ADMIN = "ADMIN", "Admin"


class AccountStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"
    DELETED = "DELETED", "Deleted"


@dataclass(frozen=True)
class Online:
    """The user has a live connection right now."""

    status = UserStatus.ONLINE

    @property
    def last_seen(self) -> None:
        return None


@dataclass(frozen=True)
class OfflineSince:
    """
    The user is offline. `at` is the moment they went offline, or None for
    an account that has never disconnected (and therefore has no watermark).
    """

    at: Optional[datetime] = None

    status = UserStatus.OFFLINE

    @property
    def last_seen(self) -> Optional[datetime]:
        return self.at


Presence = Union[Online, OfflineSince]


def presence_from_row(status: str, last_seen: Optional[datetime]) -> Presence:
    if status == UserStatus.ONLINE:
        return Online()
    return OfflineSince(last_seen)
