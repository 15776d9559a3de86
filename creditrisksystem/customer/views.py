from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.mixins import ListModelMixin, RetrieveModelMixin
from rest_framework.viewsets import GenericViewSet
from django.db.models import Count
from django.http import Http404

from .models import Customer, Region
from .serializers import CustomerResponseSerializer


class CustomerListViewSet(ListModelMixin, RetrieveModelMixin, GenericViewSet):
    """
    ViewSet for Customer listing - Only GET requests allowed
    """
    serializer_class = CustomerResponseSerializer

    def get_queryset(self):
        queryset = Customer.objects.annotate(loan_count=Count('loans')).order_by('customer_id')
        region = self.request.query_params.get('region')
        if region:
            queryset = queryset.filter(region=region)
        return queryset

    def list(self, request, *args, **kwargs):
        """
        List customers, optionally by region
        GET /api/customers/?region=West
        """
        region = request.query_params.get('region')
        if region and region not in Region.values:
            return Response(
                {
                    'error': 'Validation failed',
                    'message': f'Unknown region {region}. Expected one of {Region.values}.'
                },
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            queryset = self.get_queryset()
            page = self.paginate_queryset(queryset)
            serializer = CustomerResponseSerializer(page if page is not None else queryset, many=True)
            return Response(
                {
                    'success': True,
                    'count': self.paginator.page.paginator.count if page is not None else queryset.count(),
                    'data': serializer.data
                },
                status=status.HTTP_200_OK
            )
        except NotFound as e:
            return Response(
                {
                    'error': 'Page not found',
                    'message': str(e.detail)
                },
                status=status.HTTP_404_NOT_FOUND
            )
        except Exception:
            return Response(
                {
                    'error': 'Internal server error',
                    'message': 'Could not fetch customer data.'
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

    def retrieve(self, request, pk=None):
        """
        Retrieve a specific customer
        GET /api/customers/{customer_id}/
        """
        try:
            customer = self.get_object()
            serializer = CustomerResponseSerializer(customer)
            return Response(
                {
                    'success': True,
                    'data': serializer.data
                },
                status=status.HTTP_200_OK
            )
        except Http404:
            return Response(
                {
                    'error': 'Customer not found',
                    'message': 'Customer with the specified ID does not exist.'
                },
                status=status.HTTP_404_NOT_FOUND
            )
        except Exception:
            return Response(
                {
                    'error': 'Internal server error',
                    'message': 'Could not retrieve customer data.'
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
