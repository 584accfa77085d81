from django.contrib import admin
from django.urls import include, path
from rest_framework_simplejwt.views import TokenRefreshView

from tracker.auth import FieldSalesTokenObtainPairView

urlpatterns = [
    path("admin/", admin.site.urls),
    # JWT
    path("api/auth/token/", FieldSalesTokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    # REST
    path("api/", include("tracker.api_urls")),
]
