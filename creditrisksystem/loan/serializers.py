from rest_framework import serializers
from .models import Loan, DefaultEvent


class DefaultEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = DefaultEvent
        fields = ['default_date', 'outstanding_balance', 'recovered_amount', 'recovery_status']


class LoanResponseSerializer(serializers.ModelSerializer):
    customer_id = serializers.IntegerField(read_only=True)
    default_event = serializers.SerializerMethodField()

    class Meta:
        model = Loan
        fields = [
            'loan_id',
            'customer_id',
            'loan_amnt',
            'loan_intent',
            'loan_grade',
            'loan_int_rate',
            'loan_percent_income',
            'loan_status',
            'origination_date',
            'loan_term_months',
            'monthly_payment',
            'default_event',
        ]

    def get_default_event(self, loan):
        """Null for performing loans"""
        default_event = getattr(loan, 'default_event', None)
        if default_event is None:
            return None
        return DefaultEventSerializer(default_event).data
