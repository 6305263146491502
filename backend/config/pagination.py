from django.conf import settings
from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class OptionalPageNumberPagination(PageNumberPagination):
    page_size = getattr(settings, "API_PAGINATION_DEFAULT_PAGE_SIZE", 10)
    page_size_query_param = "page_size"
    max_page_size = getattr(settings, "API_PAGINATION_MAX_PAGE_SIZE", 100)


class OptionalPaginationListMixin:
    """Paginate only when the client asks for a ``page``; plain lists otherwise."""

    pagination_class = OptionalPageNumberPagination

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        if "page" in request.query_params:
            page = self.paginate_queryset(queryset)
            if page is not None:
                serializer = self.get_serializer(page, many=True)
                return self.get_paginated_response(serializer.data)

        serializer = self.get_serializer(queryset, many=True)
        return Response(serializer.data)


class SoftDeleteDestroyMixin:
    """``DELETE`` stamps ``deleted_at`` through the row's ``soft_delete`` instead of removing it."""

    def perform_soft_delete(self, instance) -> bool:
        return instance.soft_delete()

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        self.perform_soft_delete(instance)
        return Response(status=status.HTTP_204_NO_CONTENT)
