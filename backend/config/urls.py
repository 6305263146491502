from django.conf import settings
from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.routers import DefaultRouter

from accounts.views import LoginView, LogoutView, MeView, UserViewSet
from activities.views import ActivityViewSet
from attendance.views import AttendanceViewSet
from audit.views import AuditLogViewSet, BackupView
from members.views import MemberViewSet
from memberships.views import MembershipViewSet
from payments.views import PaymentMethodViewSet, PaymentViewSet

router = DefaultRouter()
router.register(r"activities", ActivityViewSet, basename="activity")
router.register(r"members", MemberViewSet, basename="member")
router.register(r"memberships", MembershipViewSet, basename="membership")
router.register(r"payments", PaymentViewSet, basename="payment")
router.register(r"payment-methods", PaymentMethodViewSet, basename="payment-method")
router.register(r"attendance", AttendanceViewSet, basename="attendance")
router.register(r"users", UserViewSet, basename="user")
router.register(r"audit-logs", AuditLogViewSet, basename="audit-log")


def health_check(request):
    return JsonResponse({"status": "ok"})


schema_view = (
    SpectacularAPIView.as_view(throttle_classes=[])
    if settings.DEBUG
    else SpectacularAPIView.as_view()
)

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/login/", LoginView.as_view(), name="login"),
    path("api/auth/logout/", LogoutView.as_view(), name="logout"),
    path("api/auth/me/", MeView.as_view(), name="me"),
    path("api/backups/", BackupView.as_view(), name="backups"),
    path("api/health/", health_check, name="health-check"),
    path("api/", include(router.urls)),
    path("api/schema/", schema_view, name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="docs"),
]
