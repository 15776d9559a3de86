from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Loan
from customer.models import Customer
from .serializers import LoanResponseSerializer


class ViewLoanView(APIView):
    """API View for one loan and its default event"""

    def get(self, request, loan_id):
        try:
            loan = Loan.objects.select_related('default_event').get(loan_id=loan_id)
        except Loan.DoesNotExist:
            return Response(
                {"error": "Loan not found"},
                status=status.HTTP_404_NOT_FOUND
            )

        return Response(LoanResponseSerializer(loan).data, status=status.HTTP_200_OK)


class ViewLoansView(APIView):
    """API View for all loans linked to a customer"""

    def get(self, request, customer_id):
        if not Customer.objects.filter(customer_id=customer_id).exists():
            return Response(
                {"error": "Customer not found"},
                status=status.HTTP_404_NOT_FOUND
            )

        loans = (
            Loan.objects.filter(customer_id=customer_id)
            .select_related('default_event')
            .order_by('loan_id')
        )
        return Response(LoanResponseSerializer(loans, many=True).data, status=status.HTTP_200_OK)
