from django.db.models import Q
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import IsAdminOrSuperAdmin
from config.exceptions import NotFoundError
from config.pagination import OptionalPaginationListMixin

from .models import Member
from .serializers import MemberSerializer
from .services import (
    create_member,
    deactivate_member,
    delete_member,
    reactivate_member,
    update_member,
)


class MemberViewSet(OptionalPaginationListMixin, viewsets.ModelViewSet):
    serializer_class = MemberSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_permissions(self):
        if self.action in [
            "create",
            "update",
            "partial_update",
            "destroy",
            "deactivate",
            "reactivate",
        ]:
            return [IsAdminOrSuperAdmin()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Member.objects.none()
        queryset = Member.objects.live().order_by("last_name", "first_name", "id")
        is_active = self.request.query_params.get("is_active", "").strip().lower()
        if is_active in ["true", "1"]:
            queryset = queryset.filter(is_active=True)
        elif is_active in ["false", "0"]:
            queryset = queryset.filter(is_active=False)
        search_value = self.request.query_params.get("q", "").strip()
        if search_value:
            queryset = queryset.filter(
                Q(first_name__icontains=search_value)
                | Q(last_name__icontains=search_value)
                | Q(member_number__icontains=search_value)
                | Q(email__icontains=search_value)
                | Q(dni__icontains=search_value)
            )
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        member = create_member(actor=request.user, **serializer.validated_data)
        return Response(self.get_serializer(member).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        member = self.get_object()
        serializer = self.get_serializer(member, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        member = update_member(member, actor=request.user, **serializer.validated_data)
        return Response(self.get_serializer(member).data)

    def destroy(self, request, *args, **kwargs):
        member = self.get_object()
        delete_member(member, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="deactivate")
    def deactivate(self, request, *args, **kwargs):
        member = self.get_object()
        deactivate_member(member, actor=request.user)
        return Response(self.get_serializer(member).data)

    @action(detail=True, methods=["post"], url_path="reactivate")
    def reactivate(self, request, *args, **kwargs):
        member = self.get_object()
        reactivate_member(member, actor=request.user)
        return Response(self.get_serializer(member).data)

    @action(detail=False, methods=["get"], url_path=r"by-number/(?P<member_number>[^/.]+)")
    def by_number(self, request, member_number=None):
        member = Member.objects.live().filter(member_number=member_number).first()
        if member is None:
            raise NotFoundError("Socio no encontrado")
        return Response(self.get_serializer(member).data)

    @action(detail=False, methods=["get"], url_path="active-count")
    def active_count(self, request):
        total = Member.objects.live().filter(is_active=True).count()
        return Response({"total": total})
