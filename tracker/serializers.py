from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import ActivityType, Property, UserActivity
from .status import AccountStatus

User = get_user_model()

class UserSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=False, allow_blank=True)

    class Meta:
        model = User
        fields = (
            "id", "username", "name", "email", "role", "account_status",
            "status", "last_seen", "score", "password",
        )
        read_only_fields = ("status", "last_seen", "score")

    def create(self, validated_data):
        password = validated_data.pop("password", None)
        user = User(**validated_data)
        if password:
            user.set_password(password)  # <-- hashes password
        else:
            user.set_unusable_password()
        user.save()
        return user

    def update(self, instance, validated_data):
        password = validated_data.pop("password", None)
        for k, v in validated_data.items():
            setattr(instance, k, v)
        if password:
            instance.set_password(password)  # <-- hashes on update too
        instance.save()
        return instance

class PublicUserSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = User
        fields = ("id", "name", "email", "status", "last_seen", "score")
        read_only_fields = fields

class ProfileSerializer(serializers.ModelSerializer):
    """Self-service profile edits: name, email, password."""
    password = serializers.CharField(write_only=True, required=False, min_length=6)

    class Meta:
        model = User
        fields = ("id", "username", "name", "email", "password", "status", "score")
        read_only_fields = ("id", "username", "status", "score")

    def validate_email(self, value):
        if value and User.objects.filter(email=value).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError("Email already in use")
        return value

    def update(self, instance, validated_data):
        password = validated_data.pop("password", None)
        for k, v in validated_data.items():
            setattr(instance, k, v)
        if password:
            instance.set_password(password)
        instance.save()
        return instance

class AccountStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[AccountStatus.ACTIVE, AccountStatus.INACTIVE])

class PropertySerializer(serializers.ModelSerializer):
    class Meta:
        model = Property
        fields = ("id", "name", "address", "latitude", "longitude", "created_at", "updated_at")
        read_only_fields = ("created_at", "updated_at")

class ActivityTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = ActivityType
        fields = ("id", "name", "description", "icon", "weight")

# ---------- activity records (REST) ----------

class UserActivitySerializer(serializers.ModelSerializer):
    user = PublicUserSerializer(read_only=True)
    property = PropertySerializer(read_only=True)
    activity = ActivityTypeSerializer(read_only=True)

    class Meta:
        model = UserActivity
        fields = (
            "id", "user_id", "property_id", "activity_id", "note", "latitude", "longitude",
            "created_at", "updated_at", "user", "property", "activity",
        )
        read_only_fields = fields

class UserActivityWriteSerializer(serializers.Serializer):
    # plain ids: existence is checked by the ingestion service (404, not 400)
    property_id = serializers.IntegerField(min_value=1)
    activity_id = serializers.IntegerField(min_value=1)
    note = serializers.CharField(required=False, allow_null=True, max_length=1000)
    latitude = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    longitude = serializers.FloatField(required=False, allow_null=True, min_value=-180, max_value=180)

# ---------- activity records (realtime feed, camelCase wire format) ----------

class FeedUserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField(source="display_name")
    email = serializers.EmailField(allow_null=True)

class FeedPropertySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    latitude = serializers.FloatField()
    longitude = serializers.FloatField()
    address = serializers.CharField()

class FeedActivityTypeSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    weight = serializers.IntegerField()
    icon = serializers.CharField()
    description = serializers.CharField()

class ActivityFeedSerializer(serializers.Serializer):
    """Denormalized, read-only view of a UserActivity for live/replay events."""
    id = serializers.IntegerField()
    userId = serializers.IntegerField(source="user_id")
    propertyId = serializers.IntegerField(source="property_id")
    activityId = serializers.IntegerField(source="activity_id")
    note = serializers.CharField(allow_null=True)
    latitude = serializers.FloatField(allow_null=True)
    longitude = serializers.FloatField(allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")
    user = FeedUserSerializer()
    property = FeedPropertySerializer()
    activity = FeedActivityTypeSerializer()

class OnlineUserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField(source="display_name")
    email = serializers.EmailField(allow_null=True)
    status = serializers.CharField()
    score = serializers.IntegerField()
    lastSeen = serializers.DateTimeField(source="last_seen", allow_null=True)
