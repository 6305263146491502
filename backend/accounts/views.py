import logging

from django.contrib.auth.models import update_last_login
from django.db.models import Q
from drf_spectacular.utils import extend_schema
from rest_framework import permissions, response, status, views, viewsets
from rest_framework.authtoken.models import Token
from rest_framework.exceptions import PermissionDenied

from audit.services import record_audit_event
from config.pagination import OptionalPaginationListMixin, SoftDeleteDestroyMixin

from .models import User
from .permissions import IsAdminOrSuperAdmin, IsSuperAdmin
from .serializers import (
    EmptySerializer,
    LoginResponseSerializer,
    LoginSerializer,
    UserSerializer,
    UserWriteSerializer,
)

logger = logging.getLogger(__name__)


@extend_schema(
    request=LoginSerializer,
    responses=LoginResponseSerializer,
)
class LoginView(views.APIView):
    permission_classes = [permissions.AllowAny]
    serializer_class = LoginSerializer

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]
        token, _ = Token.objects.get_or_create(user=user)
        update_last_login(None, user)
        logger.info("User %s logged in", user.username)
        return response.Response({"token": token.key, "user": UserSerializer(user).data})


@extend_schema(
    request=EmptySerializer,
    responses={status.HTTP_204_NO_CONTENT: None},
)
class LogoutView(views.APIView):
    serializer_class = EmptySerializer

    def post(self, request):
        Token.objects.filter(user=request.user).delete()
        return response.Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    request=EmptySerializer,
    responses=UserSerializer,
)
class MeView(views.APIView):
    serializer_class = EmptySerializer

    def get(self, request):
        return response.Response(UserSerializer(request.user).data)


class UserViewSet(
    SoftDeleteDestroyMixin,
    OptionalPaginationListMixin,
    viewsets.ModelViewSet,
):
    http_method_names = ["get", "post", "put", "patch", "delete", "head", "options"]

    def get_serializer_class(self):
        if self.action in ["create", "update", "partial_update"]:
            return UserWriteSerializer
        return UserSerializer

    def get_permissions(self):
        if self.action in ["update", "partial_update", "destroy"]:
            return [IsSuperAdmin()]
        return [IsAdminOrSuperAdmin()]

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return User.objects.none()
        queryset = User.objects.filter(deleted_at__isnull=True).order_by("username")
        role = self.request.query_params.get("role", "").strip()
        if role:
            queryset = queryset.filter(role=role)
        search_value = self.request.query_params.get("q", "").strip()
        if search_value:
            queryset = queryset.filter(
                Q(username__icontains=search_value)
                | Q(email__icontains=search_value)
                | Q(first_name__icontains=search_value)
                | Q(last_name__icontains=search_value)
            )
        return queryset

    def perform_create(self, serializer):
        actor = self.request.user
        requested_role = serializer.validated_data.get("role", User.Roles.RECEPTIONIST)
        if actor.role == User.Roles.ADMIN and requested_role != User.Roles.RECEPTIONIST:
            raise PermissionDenied(
                "Los administradores solo pueden crear usuarios con rol 'recepcionista'"
            )
        user = serializer.save(role=requested_role)
        record_audit_event(
            "user.created",
            message=f"Usuario {user.username} creado.",
            actor=actor,
            metadata={"user_id": user.id, "role": user.role},
        )

    def perform_update(self, serializer):
        user = serializer.save()
        record_audit_event(
            "user.updated",
            message=f"Usuario {user.username} actualizado.",
            actor=self.request.user,
            metadata={"user_id": user.id, "role": user.role},
        )

    def perform_soft_delete(self, instance) -> bool:
        if instance.pk == self.request.user.pk:
            raise PermissionDenied("No puede eliminar su propio usuario")
        deleted = instance.soft_delete()
        if deleted:
            Token.objects.filter(user=instance).delete()
            record_audit_event(
                "user.deleted",
                message=f"Usuario {instance.username} eliminado.",
                actor=self.request.user,
                metadata={"user_id": instance.id},
            )
        return deleted

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.perform_create(serializer)
        return response.Response(
            UserSerializer(serializer.instance).data,
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        self.perform_update(serializer)
        return response.Response(UserSerializer(serializer.instance).data)
