from datetime import timedelta

from django.db.models import Q
from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response

from accounts.permissions import IsAdminOrSuperAdmin, IsFrontDeskStaff
from config.exceptions import NotFoundError
from config.pagination import OptionalPaginationListMixin

from .ledger import (
    attach_activity,
    create_membership,
    delete_membership,
    detach_activity,
    replace_activities,
)
from .models import Membership
from .serializers import (
    EXPIRING_SOON_DAYS,
    ActivityAssignmentSerializer,
    MembershipCreateSerializer,
    MembershipHistorySerializer,
    MembershipListQuerySerializer,
    MembershipSerializer,
    MembershipUpdateSerializer,
)


def _parse_int(value, name: str):
    if value in [None, ""]:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise DRFValidationError({name: "Debe ser un número entero."})


class MembershipViewSet(OptionalPaginationListMixin, viewsets.ModelViewSet):
    serializer_class = MembershipSerializer
    permission_classes = [IsAdminOrSuperAdmin]
    http_method_names = ["get", "post", "put", "delete", "head", "options"]

    def get_permissions(self):
        if self.action in ["assign_activity", "remove_activity"]:
            return [IsFrontDeskStaff()]
        return [IsAdminOrSuperAdmin()]

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Membership.objects.none()
        queryset = (
            Membership.objects.live()
            .with_totals()
            .select_related("member")
            .prefetch_related("lines__activity")
            .order_by("-period_start", "-id")
        )
        if self.action != "list":
            return queryset

        query = MembershipListQuerySerializer(data=self.request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        if params.get("member_id") is not None:
            queryset = queryset.filter(member_id=params["member_id"])
        if params.get("year") is not None:
            queryset = queryset.filter(period_year=params["year"])
        if params.get("month") is not None:
            queryset = queryset.filter(period_month=params["month"])
        if params.get("date_from"):
            queryset = queryset.filter(period_start__gte=params["date_from"])
        if params.get("date_to"):
            queryset = queryset.filter(period_end__lte=params["date_to"])

        search_value = params.get("q", "").strip()
        if search_value:
            queryset = queryset.filter(
                Q(member__first_name__icontains=search_value)
                | Q(member__last_name__icontains=search_value)
                | Q(member__member_number__icontains=search_value)
                | Q(member__dni__icontains=search_value)
            )

        today = timezone.localdate()
        soon = today + timedelta(days=EXPIRING_SOON_DAYS)
        validity = params.get("validity", "")
        if validity == "current":
            queryset = queryset.filter(period_end__gt=soon)
        elif validity == "expired":
            queryset = queryset.filter(period_end__lt=today)
        elif validity == "expiring":
            queryset = queryset.filter(period_end__gte=today, period_end__lte=soon)

        if params["only_unpaid"]:
            queryset = queryset.filter(balance__gt=0)
        return queryset

    def _fresh(self, membership_id: int) -> Membership:
        membership = self.get_queryset().filter(id=membership_id).first()
        if membership is None:
            raise NotFoundError("Membresía no encontrada")
        return membership

    @extend_schema(request=MembershipCreateSerializer, responses=MembershipSerializer)
    def create(self, request, *args, **kwargs):
        serializer = MembershipCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        membership = create_membership(
            data["member_id"],
            data["period_year"],
            data["period_month"],
            data["activity_ids"],
            actor=request.user,
        )
        return Response(
            MembershipSerializer(self._fresh(membership.id)).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(request=MembershipUpdateSerializer, responses=MembershipSerializer)
    def update(self, request, *args, **kwargs):
        membership = self.get_object()
        serializer = MembershipUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        replace_activities(
            membership.id,
            serializer.validated_data["activity_ids"],
            actor=request.user,
        )
        return Response(MembershipSerializer(self._fresh(membership.id)).data)

    def destroy(self, request, *args, **kwargs):
        if not delete_membership(_parse_int(kwargs["pk"], "id"), actor=request.user):
            raise NotFoundError("Membresía no encontrada")
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=ActivityAssignmentSerializer, responses=MembershipSerializer)
    @action(detail=False, methods=["post"], url_path="assign-activity")
    def assign_activity(self, request):
        serializer = ActivityAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        membership = attach_activity(
            serializer.validated_data["membership_id"],
            serializer.validated_data["activity_id"],
            actor=request.user,
        )
        return Response(MembershipSerializer(self._fresh(membership.id)).data)

    @extend_schema(request=ActivityAssignmentSerializer, responses=MembershipSerializer)
    @action(detail=False, methods=["post"], url_path="remove-activity")
    def remove_activity(self, request):
        serializer = ActivityAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        membership = detach_activity(
            serializer.validated_data["membership_id"],
            serializer.validated_data["activity_id"],
            actor=request.user,
        )
        return Response(MembershipSerializer(self._fresh(membership.id)).data)

    @action(detail=False, methods=["get"], url_path="count")
    def count(self, request):
        return Response({"total": Membership.objects.live().count()})

    @extend_schema(responses=MembershipHistorySerializer(many=True))
    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request, *args, **kwargs):
        membership = self.get_object()
        records = membership.history.select_related("history_user").order_by("-history_date", "-history_id")
        payload = [
            {
                "history_id": record.history_id,
                "history_date": record.history_date,
                "history_type": record.history_type,
                "history_user": record.history_user.username if record.history_user else None,
                "deleted_at": record.deleted_at,
            }
            for record in records
        ]
        return Response(MembershipHistorySerializer(payload, many=True).data)
