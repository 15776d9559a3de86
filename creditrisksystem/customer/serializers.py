from rest_framework import serializers
from .models import Customer


class CustomerResponseSerializer(serializers.ModelSerializer):
    """
    Serializer for customer response data
    """
    loan_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Customer
        fields = [
            'customer_id',
            'person_age',
            'person_income',
            'person_home_ownership',
            'person_emp_length',
            'historical_default',
            'credit_history_length',
            'region',
            'loan_count',
        ]
