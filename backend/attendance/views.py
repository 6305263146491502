from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import IsFrontDeskStaff
from config.pagination import OptionalPaginationListMixin

from .gate import check_status, list_attendance, record_entry
from .models import Attendance
from .serializers import AttendanceQuerySerializer, AttendanceSerializer, DecisionSerializer


class AttendanceViewSet(OptionalPaginationListMixin, viewsets.GenericViewSet):
    serializer_class = AttendanceSerializer
    filter_backends = []

    def get_permissions(self):
        if self.action == "verify":
            return [permissions.IsAuthenticated()]
        return [IsFrontDeskStaff()]

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Attendance.objects.none()
        query = AttendanceQuerySerializer(data=self.request.query_params)
        query.is_valid(raise_exception=True)
        return list_attendance(
            on_date=query.validated_data.get("date"),
            member_id=query.validated_data.get("member_id"),
        )

    @extend_schema(
        parameters=[
            OpenApiParameter("date", str, description="YYYY-MM-DD"),
            OpenApiParameter("member_id", int),
        ],
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=None, responses=DecisionSerializer)
    @action(detail=False, methods=["get"], url_path=r"verify/(?P<dni>[^/]+)")
    def verify(self, request, dni=None):
        return Response(DecisionSerializer(check_status(dni)).data)

    @extend_schema(request=None, responses={201: AttendanceSerializer})
    @action(detail=False, methods=["post"], url_path=r"register/(?P<dni>[^/]+)")
    def register(self, request, dni=None):
        attendance = record_entry(dni, actor=request.user)
        return Response(AttendanceSerializer(attendance).data, status=status.HTTP_201_CREATED)
