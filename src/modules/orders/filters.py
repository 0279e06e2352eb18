import django_filters

from modules.orders import conf
from modules.orders.constants import PaymentStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    company = django_filters.UUIDFilter(field_name="company_id")
    client = django_filters.UUIDFilter(field_name="client_id")
    payment_status = django_filters.ChoiceFilter(choices=PaymentStatus.choices)
    stage = django_filters.CharFilter(method="filter_stage")
    start_date = django_filters.DateFilter(field_name="order_date", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="order_date", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = ["company", "client", "payment_status", "stage", "start_date", "end_date"]

    def filter_stage(self, queryset, name, value):
        """Match the stage by canonical name or alias; unknown labels match nothing."""
        sequence = conf.get_stage_sequence()
        ordinal = sequence.resolve(value)
        if ordinal is None:
            return queryset.none()
        return queryset.filter(current_stage__in=sequence[ordinal].labels)
