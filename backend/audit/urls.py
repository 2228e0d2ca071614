from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import AuditLogViewSet


router = DefaultRouter()
router.register(r"audit-logs", AuditLogViewSet, basename="auditlog")

urlpatterns = [
	path("", include(router.urls)),
]
