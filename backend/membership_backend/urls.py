"""
URL configuration for membership_backend project.

Every operation is mounted under /api/; token endpoints issue JWTs that carry
the account's role claim.
"""

from django.contrib import admin
from django.urls import path, include
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/", include("members.urls")),
    path("api/", include("contributions.urls")),
    path("api/", include("conditions.urls")),
    path("api/", include("elections.urls")),
    path("api/", include("audit.urls")),
]
