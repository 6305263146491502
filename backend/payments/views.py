from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import IsAdminOrSuperAdmin
from config.exceptions import NotFoundError
from config.pagination import OptionalPaginationListMixin

from .filters import PaymentFilterSet
from .models import Payment, PaymentMethod
from .receipts import generate_receipt
from .serializers import (
    PaymentCreateSerializer,
    PaymentMethodSerializer,
    PaymentSerializer,
    PaymentStatisticsSerializer,
    ReceiptSerializer,
    StatisticsQuerySerializer,
)
from .services import payment_statistics, register_payment, void_payment


class PaymentViewSet(OptionalPaginationListMixin, viewsets.ModelViewSet):
    serializer_class = PaymentSerializer
    filterset_class = PaymentFilterSet
    http_method_names = ["get", "post", "delete", "head", "options"]

    def get_permissions(self):
        if self.action in ["create", "destroy", "statistics"]:
            return [IsAdminOrSuperAdmin()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Payment.objects.none()
        return (
            Payment.objects.live()
            .select_related("membership__member", "payment_method", "processed_by")
            .order_by("-paid_at", "-id")
        )

    @extend_schema(request=PaymentCreateSerializer, responses={201: ReceiptSerializer})
    def create(self, request, *args, **kwargs):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        receipt = register_payment(
            data["membership_id"],
            data["payment_method_id"],
            data["amount"],
            paid_at=data.get("paid_at"),
            processed_by=request.user,
        )
        return Response(ReceiptSerializer(receipt).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        try:
            payment_id = int(kwargs["pk"])
        except (TypeError, ValueError):
            raise NotFoundError("Pago no encontrado")
        if not void_payment(payment_id, actor=request.user):
            raise NotFoundError("Pago no encontrado o ya anulado")
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(responses=ReceiptSerializer)
    @action(detail=True, methods=["get"], url_path="receipt")
    def receipt(self, request, *args, **kwargs):
        payment = self.get_object()
        return Response(ReceiptSerializer(generate_receipt(payment.id)).data)

    @extend_schema(
        parameters=[
            OpenApiParameter("date_from", str, description="YYYY-MM-DD"),
            OpenApiParameter("date_to", str, description="YYYY-MM-DD"),
        ],
        responses=PaymentStatisticsSerializer,
    )
    @action(detail=False, methods=["get"], url_path="statistics", filterset_class=None)
    def statistics(self, request):
        query = StatisticsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        payload = payment_statistics(
            query.validated_data.get("date_from"),
            query.validated_data.get("date_to"),
        )
        return Response(PaymentStatisticsSerializer(payload).data)


class PaymentMethodViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = PaymentMethodSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return PaymentMethod.objects.filter(is_active=True).order_by("name")
