# pyright: reportIncompatibleMethodOverride=false
from rest_framework.permissions import BasePermission


class IsSuperAdmin(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore
        return request.user.is_authenticated and request.user.role == "superadmin"


class IsAdminOrSuperAdmin(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore
        return request.user.is_authenticated and request.user.role in ["superadmin", "admin"]


class IsFrontDeskStaff(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore
        return request.user.is_authenticated and request.user.role in [
            "superadmin",
            "admin",
            "receptionist",
        ]
