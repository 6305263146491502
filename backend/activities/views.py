from rest_framework import permissions, status, viewsets
from rest_framework.response import Response

from accounts.permissions import IsAdminOrSuperAdmin
from config.pagination import OptionalPaginationListMixin

from .models import Activity
from .serializers import ActivitySerializer
from .services import create_activity, delete_activity, update_activity


class ActivityViewSet(OptionalPaginationListMixin, viewsets.ModelViewSet):
    serializer_class = ActivitySerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_permissions(self):
        if self.action in ["create", "update", "partial_update", "destroy"]:
            return [IsAdminOrSuperAdmin()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Activity.objects.none()
        queryset = Activity.objects.live().order_by("name")
        search_value = self.request.query_params.get("q", "").strip()
        if search_value:
            queryset = queryset.filter(name__icontains=search_value)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        activity = create_activity(actor=request.user, **serializer.validated_data)
        return Response(self.get_serializer(activity).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        activity = self.get_object()
        serializer = self.get_serializer(activity, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        activity = update_activity(activity, actor=request.user, **serializer.validated_data)
        return Response(self.get_serializer(activity).data)

    def destroy(self, request, *args, **kwargs):
        activity = self.get_object()
        delete_activity(activity, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
