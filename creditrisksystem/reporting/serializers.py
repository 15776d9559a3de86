from rest_framework import serializers


class LoanSummarySerializer(serializers.Serializer):
    loan_id = serializers.IntegerField()
    customer_id = serializers.IntegerField()
    person_age = serializers.IntegerField(allow_null=True)
    person_income = serializers.FloatField(allow_null=True)
    person_home_ownership = serializers.CharField(allow_null=True)
    person_emp_length = serializers.FloatField()
    credit_history_length = serializers.IntegerField(allow_null=True)
    historical_default = serializers.CharField(allow_null=True)
    region = serializers.CharField()
    loan_amnt = serializers.FloatField(allow_null=True)
    loan_intent = serializers.CharField(allow_null=True)
    loan_grade = serializers.CharField(allow_null=True)
    loan_int_rate = serializers.FloatField()
    loan_percent_income = serializers.FloatField(allow_null=True)
    loan_status = serializers.IntegerField(allow_null=True)
    origination_date = serializers.DateField()
    loan_term_months = serializers.IntegerField()
    monthly_payment = serializers.FloatField(allow_null=True)
    default_date = serializers.DateField(allow_null=True)
    outstanding_balance = serializers.FloatField(allow_null=True)
    recovered_amount = serializers.FloatField(allow_null=True)
    recovery_status = serializers.CharField(allow_null=True)
    loan_age_months = serializers.IntegerField()


class TableRowCountSerializer(serializers.Serializer):
    table_name = serializers.CharField()
    row_count = serializers.IntegerField()
    description = serializers.CharField()


class IntegrityCheckSerializer(serializers.Serializer):
    integrity_check = serializers.CharField()
    issue_count = serializers.IntegerField()


class GradeSummarySerializer(serializers.Serializer):
    loan_grade = serializers.CharField(allow_null=True)
    loan_count = serializers.IntegerField()
    avg_loan_amount = serializers.FloatField(allow_null=True)
    avg_interest_rate = serializers.FloatField(allow_null=True)
    total_defaults = serializers.IntegerField()
    default_rate_pct = serializers.FloatField(allow_null=True)


class PortfolioSummarySerializer(serializers.Serializer):
    total_loans = serializers.IntegerField()
    unique_customers = serializers.IntegerField()
    total_loan_volume = serializers.FloatField(allow_null=True)
    avg_loan_size = serializers.FloatField(allow_null=True)
    total_defaults = serializers.IntegerField()
    overall_default_rate = serializers.FloatField(allow_null=True)
    avg_interest_rate = serializers.FloatField(allow_null=True)


class RecoverySummarySerializer(serializers.Serializer):
    recovery_status = serializers.CharField()
    default_count = serializers.IntegerField()
    total_outstanding = serializers.FloatField(allow_null=True)
    total_recovered = serializers.FloatField(allow_null=True)
    recovery_rate_pct = serializers.FloatField(allow_null=True)


class StagingProfileSerializer(serializers.Serializer):
    total_records = serializers.IntegerField()
    min_age = serializers.IntegerField(allow_null=True)
    max_age = serializers.IntegerField(allow_null=True)
    min_loan = serializers.FloatField(allow_null=True)
    max_loan = serializers.FloatField(allow_null=True)
    total_defaults = serializers.IntegerField()
    default_rate_pct = serializers.FloatField(allow_null=True)


class NullRateSerializer(serializers.Serializer):
    column_name = serializers.CharField()
    null_count = serializers.IntegerField()
    null_pct = serializers.FloatField(allow_null=True)
