import django_filters

from .models import Payment


class PaymentFilterSet(django_filters.FilterSet):
    membership_id = django_filters.NumberFilter(field_name="membership_id")
    member_id = django_filters.NumberFilter(field_name="membership__member_id")
    method_id = django_filters.NumberFilter(field_name="payment_method_id")
    date_from = django_filters.DateFilter(field_name="paid_at", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="paid_at", lookup_expr="date__lte")

    class Meta:
        model = Payment
        fields = ["membership_id", "member_id", "method_id", "date_from", "date_to"]
