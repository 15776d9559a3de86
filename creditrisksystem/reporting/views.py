from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet
from django.utils import timezone

from loan.models import Loan
from staging.validation import staging_profile, staging_null_rates
from .queries import (
    loan_summary_queryset,
    summary_row,
    table_row_counts,
    integrity_checks,
    grade_summary,
    portfolio_summary,
    default_recovery_summary,
)
from .serializers import (
    LoanSummarySerializer,
    TableRowCountSerializer,
    IntegrityCheckSerializer,
    GradeSummarySerializer,
    PortfolioSummarySerializer,
    RecoverySummarySerializer,
    StagingProfileSerializer,
    NullRateSerializer,
)


class LoanSummaryViewSet(GenericViewSet):
    """
    Read-only denormalized loan rows (loan + customer + default event)
    """
    serializer_class = LoanSummarySerializer

    def parse_status(self):
        """Optional ?status=0|1 filter; raises ValueError on anything else"""
        raw_status = self.request.query_params.get('status')
        if raw_status in (None, ''):
            return None
        loan_status = int(raw_status)
        if loan_status not in (0, 1):
            raise ValueError(f"status must be 0 or 1, got {raw_status}")
        return loan_status

    def get_queryset(self):
        return loan_summary_queryset(
            grade=self.request.query_params.get('grade'),
            status=self.parse_status(),
        )

    def list(self, request, *args, **kwargs):
        """
        List loan summary rows, paginated
        GET /api/reporting/loan-summary/?grade=B&status=1
        """
        try:
            queryset = self.get_queryset()
        except ValueError as e:
            return Response(
                {
                    'error': 'Validation failed',
                    'message': str(e)
                },
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            as_of = timezone.now().date()
            page = self.paginate_queryset(queryset)
            loans = page if page is not None else queryset
            serializer = LoanSummarySerializer([summary_row(loan, as_of) for loan in loans], many=True)

            if page is not None:
                return Response(
                    {
                        'success': True,
                        'count': self.paginator.page.paginator.count,
                        'next': self.paginator.get_next_link(),
                        'previous': self.paginator.get_previous_link(),
                        'data': serializer.data
                    },
                    status=status.HTTP_200_OK
                )
            return Response(
                {
                    'success': True,
                    'count': len(serializer.data),
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
                    'message': 'Could not fetch loan summary data.'
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

    def retrieve(self, request, loan_id=None):
        """
        Retrieve the summary row of one loan
        GET /api/reporting/loan-summary/{loan_id}/
        """
        try:
            loan = loan_summary_queryset().get(loan_id=loan_id)
            serializer = LoanSummarySerializer(summary_row(loan))
            return Response(
                {
                    'success': True,
                    'data': serializer.data
                },
                status=status.HTTP_200_OK
            )
        except Loan.DoesNotExist:
            return Response(
                {
                    'error': 'Loan not found',
                    'message': 'Loan with the specified ID does not exist.'
                },
                status=status.HTTP_404_NOT_FOUND
            )
        except Exception:
            return Response(
                {
                    'error': 'Internal server error',
                    'message': 'Could not retrieve loan summary data.'
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )


class IntegrityCheckView(APIView):
    """Orphan checks across customers, loans and defaults"""

    def get(self, request):
        checks = integrity_checks()
        return Response(
            {
                'success': True,
                'passed': all(check['issue_count'] == 0 for check in checks),
                'data': IntegrityCheckSerializer(checks, many=True).data
            },
            status=status.HTTP_200_OK
        )


class PortfolioSummaryView(APIView):
    """Row counts plus grade, portfolio and recovery level aggregates"""

    def get(self, request):
        return Response(
            {
                'success': True,
                'row_counts': TableRowCountSerializer(table_row_counts(), many=True).data,
                'portfolio': PortfolioSummarySerializer(portfolio_summary()).data,
                'grades': GradeSummarySerializer(grade_summary(), many=True).data,
                'recovery': RecoverySummarySerializer(default_recovery_summary(), many=True).data,
            },
            status=status.HTTP_200_OK
        )


class StagingProfileView(APIView):
    """Validation statistics over the raw staging table"""

    def get(self, request):
        return Response(
            {
                'success': True,
                'profile': StagingProfileSerializer(staging_profile()).data,
                'null_rates': NullRateSerializer(staging_null_rates(), many=True).data,
            },
            status=status.HTTP_200_OK
        )
