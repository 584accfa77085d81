from django.contrib.auth import get_user_model
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import ActivityType, Property
from .permissions import ActiveAccount, IsActivityOwner, IsAdminRole, IsAdminRoleOrReadOnly
from .serializers import (
    AccountStatusSerializer, ActivityTypeSerializer, ProfileSerializer, PropertySerializer,
    PublicUserSerializer, UserActivitySerializer, UserActivityWriteSerializer, UserSerializer,
)
from .services import ActivityIngestion
from .status import AccountStatus
from .store import ActivityStore, parse_activity_filters

User = get_user_model()

# ---------- Users ----------
class UserViewSet(viewsets.ModelViewSet):
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, ActiveAccount]
    admin_actions = ("create", "update", "partial_update", "destroy", "set_status")

    def get_queryset(self):
        qs = User.objects.all().order_by("id")
        if getattr(self.request.user, "is_admin_role", False):
            return qs
        return qs.exclude(account_status=AccountStatus.DELETED)

    def get_serializer_class(self):
        if getattr(self.request.user, "is_admin_role", False):
            return UserSerializer
        return PublicUserSerializer

    def get_permissions(self):
        if self.action in self.admin_actions:
            return [IsAuthenticated(), ActiveAccount(), IsAdminRole()]
        return super().get_permissions()

    @action(detail=False, methods=["get", "patch"])
    def me(self, request):
        if request.method == "GET":
            return Response(ProfileSerializer(request.user).data)
        ser = ProfileSerializer(request.user, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        ser.save()
        return Response(ser.data)

    @action(detail=True, methods=["post"])
    def set_status(self, request, pk=None):
        user = self.get_object()
        ser = AccountStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        user.account_status = ser.validated_data["status"]
        user.save(update_fields=["account_status"])
        return Response(UserSerializer(user).data)

    def perform_destroy(self, instance):
        # keep the row: activity history and scores still reference it
        instance.soft_delete()

# ---------- Reference data ----------
class PropertyViewSet(viewsets.ModelViewSet):
    queryset = Property.objects.all().order_by("id")
    serializer_class = PropertySerializer
    permission_classes = [IsAuthenticated, ActiveAccount, IsAdminRoleOrReadOnly]

class ActivityTypeViewSet(viewsets.ModelViewSet):
    queryset = ActivityType.objects.all().order_by("id")
    serializer_class = ActivityTypeSerializer
    permission_classes = [IsAuthenticated, ActiveAccount, IsAdminRoleOrReadOnly]

# ---------- Activity records ----------
class UserActivityViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Activity records go through ActivityIngestion for every write so the
    actor's score and the live feed stay consistent with the table.
    """
    serializer_class = UserActivitySerializer
    permission_classes = [IsAuthenticated, ActiveAccount, IsActivityOwner]
    lookup_value_regex = r"\d+"

    store = ActivityStore()

    def get_ingestion(self):
        return ActivityIngestion(store=self.store)

    def get_queryset(self):
        return self.store.find_activity_records_by_user(self.request.user.pk)

    def get_object(self):
        record = self.store.find_activity_record_by_id(self.kwargs["pk"])
        self.check_object_permissions(self.request, record)
        return record

    def create(self, request):
        ser = UserActivityWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        record = self.get_ingestion().create(request.user.pk, **ser.validated_data)
        return Response(UserActivitySerializer(record).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(UserActivitySerializer(self.get_object()).data)

    def partial_update(self, request, pk=None):
        record = self.get_object()
        ser = UserActivityWriteSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        updated = self.get_ingestion().update(record.pk, request.user.pk, **ser.validated_data)
        return Response(UserActivitySerializer(updated).data)

    def update(self, request, pk=None):
        return self.partial_update(request, pk=pk)

    def destroy(self, request, pk=None):
        record = self.get_object()
        self.get_ingestion().delete(record.pk, request.user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path="all")
    def all_records(self, request):
        filters = parse_activity_filters(request.query_params)
        qs = self.store.filter_activity_records(filters)
        return Response(UserActivitySerializer(qs, many=True).data)

# ---------- Dashboard ----------
class DashboardViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated, ActiveAccount]
    store = ActivityStore()

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return Response(self.store.stats())

    @action(detail=False, methods=["get"])
    def leaderboard(self, request):
        return Response(self.store.leaderboard())
