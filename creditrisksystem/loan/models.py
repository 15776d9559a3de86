from decimal import Decimal

from django.db import models
from django.db.models import Q
from customer.models import Customer


class Loan(models.Model):
    loan_id = models.IntegerField(primary_key=True, help_text="Unique loan identifier")
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='loans',
                                 db_column='customer_id')
    loan_amnt = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    loan_intent = models.CharField(max_length=50, null=True, blank=True)
    loan_grade = models.CharField(max_length=5, null=True, blank=True)
    loan_int_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('10.00'))
    loan_percent_income = models.DecimalField(
        max_digits=5, decimal_places=4, null=True, blank=True,
        help_text="Loan amount as percentage of annual income (debt-to-income ratio)"
    )
    loan_status = models.IntegerField(null=True, blank=True, help_text="0 = current/paid, 1 = defaulted")
    origination_date = models.DateField(help_text="Date loan was originated")
    loan_term_months = models.IntegerField()
    monthly_payment = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    source_row = models.BigIntegerField(null=True, blank=True, help_text="Staging row this loan came from")

    def __str__(self):
        return f"Loan {self.loan_id} - Customer {self.customer_id}"

    class Meta:
        db_table = 'loans'
        db_table_comment = 'Loan application details, terms, and status'
        constraints = [
            models.CheckConstraint(condition=Q(loan_status__in=[0, 1]), name='chk_loan_status'),
        ]
        # using indexes to speed up the reporting joins and group-bys
        indexes = [
            models.Index(fields=["customer"], name='idx_loans_customer'),
            models.Index(fields=["loan_grade"], name='idx_loans_grade'),
            models.Index(fields=["origination_date"], name='idx_loans_date'),
            models.Index(fields=["loan_status"], name='idx_loans_status'),
            models.Index(fields=["loan_intent"], name='idx_loans_intent'),
        ]


class RecoveryStatus(models.TextChoices):
    IN_COLLECTION = 'IN_COLLECTION'
    PARTIALLY_RECOVERED = 'PARTIALLY_RECOVERED'
    CHARGED_OFF = 'CHARGED_OFF'


class DefaultEvent(models.Model):
    loan = models.OneToOneField(Loan, on_delete=models.CASCADE, primary_key=True,
                                related_name='default_event', db_column='loan_id')
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='default_events',
                                 db_column='customer_id')
    default_date = models.DateField()
    outstanding_balance = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                              help_text="Remaining balance at time of default")
    recovered_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                           help_text="Amount recovered through collections")
    recovery_status = models.CharField(max_length=20, choices=RecoveryStatus.choices)

    def __str__(self):
        return f"Default on loan {self.loan_id} ({self.recovery_status})"

    class Meta:
        db_table = 'defaults'
        db_table_comment = 'Default events and recovery information for defaulted loans'
        indexes = [
            models.Index(fields=["default_date"], name='idx_defaults_date'),
            models.Index(fields=["recovery_status"], name='idx_defaults_status'),
        ]
