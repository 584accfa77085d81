from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from .status import AccountStatus, Presence, UserRole, UserStatus, presence_from_row

# -------------------------
# Users
# -------------------------

class User(AbstractUser):
    name = models.CharField(max_length=150, blank=True)
    email = models.EmailField(blank=True, null=True)  # <-- allow NULL
    role = models.CharField(max_length=16, choices=UserRole.choices, default=UserRole.SALES_REP)
    account_status = models.CharField(
        max_length=16, choices=AccountStatus.choices, default=AccountStatus.ACTIVE
    )
    # durable presence; the in-memory directory is authoritative for "right now"
    status = models.CharField(max_length=16, choices=UserStatus.choices, default=UserStatus.OFFLINE)
    last_seen = models.DateTimeField(null=True, blank=True)
    score = models.IntegerField(default=0)

    class Meta:
        constraints = [
            # Unique only when email is present (not NULL/empty)
            models.UniqueConstraint(
                fields=["email"],
                condition=Q(email__isnull=False) & ~Q(email=""),
                name="unique_user_email_not_blank",
            )
        ]

    def __str__(self) -> str:
        return self.display_name

    @property
    def display_name(self) -> str:
        return self.name or self.username

    @property
    def presence(self) -> Presence:
        return presence_from_row(self.status, self.last_seen)

    @property
    def is_admin_role(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_account_active(self) -> bool:
        return self.account_status == AccountStatus.ACTIVE

    def soft_delete(self) -> None:
        self.account_status = AccountStatus.DELETED
        self.save(update_fields=["account_status"])


# -------------------------
# Properties & activity types
# -------------------------

class Property(models.Model):
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=512, blank=True)
    latitude = models.FloatField(
        validators=[MinValueValidator(-90), MaxValueValidator(90)]
    )
    longitude = models.FloatField(
        validators=[MinValueValidator(-180), MaxValueValidator(180)]
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "properties"

    def __str__(self) -> str:
        return self.name


class ActivityType(models.Model):
    name = models.CharField(max_length=64, unique=True)
    description = models.TextField(blank=True)
    icon = models.URLField(max_length=512, blank=True)
    weight = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    def __str__(self) -> str:
        return f"{self.name} ({self.weight})"


# -------------------------
# Activity records
# -------------------------

class UserActivity(models.Model):
    user = models.ForeignKey(User, related_name="activities", on_delete=models.CASCADE)
    property = models.ForeignKey(Property, related_name="activities", on_delete=models.CASCADE)
    activity = models.ForeignKey(ActivityType, related_name="records", on_delete=models.PROTECT)
    note = models.TextField(blank=True, null=True)
    latitude = models.FloatField(
        null=True, blank=True, validators=[MinValueValidator(-90), MaxValueValidator(90)]
    )
    longitude = models.FloatField(
        null=True, blank=True, validators=[MinValueValidator(-180), MaxValueValidator(180)]
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "user activities"
        indexes = [models.Index(fields=["user", "created_at"], name="tracker_ua_user_created_idx")]

    def __str__(self) -> str:
        return f"{self.user_id}:{self.activity_id}@{self.property_id}"
