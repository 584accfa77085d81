from rest_framework.routers import DefaultRouter
from .api import ActivityTypeViewSet, DashboardViewSet, PropertyViewSet, UserActivityViewSet, UserViewSet

router = DefaultRouter()
router.register(r"users", UserViewSet, basename="users")
router.register(r"properties", PropertyViewSet, basename="properties")
router.register(r"activity-types", ActivityTypeViewSet, basename="activity-types")
router.register(r"user-activities", UserActivityViewSet, basename="user-activities")
router.register(r"dashboard", DashboardViewSet, basename="dashboard")

urlpatterns = router.urls
