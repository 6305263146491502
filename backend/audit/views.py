from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsSuperAdmin
from config.pagination import OptionalPaginationListMixin

from .backups import create_backup, list_backups
from .models import AuditLog
from .serializers import AuditLogQuerySerializer, AuditLogSerializer, BackupFileSerializer


class AuditLogViewSet(OptionalPaginationListMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = AuditLogSerializer
    permission_classes = [IsSuperAdmin]
    filter_backends = []

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return AuditLog.objects.none()
        queryset = AuditLog.objects.select_related("actor").order_by("-created_at", "-id")
        if self.action != "list":
            return queryset

        query = AuditLogQuerySerializer(data=self.request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        if params.get("action"):
            queryset = queryset.filter(action__icontains=params["action"].strip())
        if params.get("actor_id"):
            queryset = queryset.filter(actor_id=params["actor_id"])
        if params.get("date_from"):
            queryset = queryset.filter(created_at__date__gte=params["date_from"])
        if params.get("date_to"):
            queryset = queryset.filter(created_at__date__lte=params["date_to"])
        return queryset

    @extend_schema(
        parameters=[
            OpenApiParameter("action", str),
            OpenApiParameter("actor_id", int),
            OpenApiParameter("date_from", str, description="YYYY-MM-DD"),
            OpenApiParameter("date_to", str, description="YYYY-MM-DD"),
        ],
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)


class BackupView(APIView):
    permission_classes = [IsSuperAdmin]

    @extend_schema(responses=BackupFileSerializer(many=True))
    def get(self, request):
        return Response(BackupFileSerializer(list_backups(), many=True).data)

    @extend_schema(request=None, responses={201: BackupFileSerializer})
    def post(self, request):
        backup = create_backup(actor=request.user)
        return Response(BackupFileSerializer(backup).data, status=status.HTTP_201_CREATED)
