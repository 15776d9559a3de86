from django.db import models


class CreditRiskStaging(models.Model):
    """
    One row per line of the raw credit risk CSV, columns as in the file.
    The auto id keeps file order so downstream steps can trace rows back.
    """
    person_age = models.IntegerField(null=True, blank=True)
    person_income = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    person_home_ownership = models.CharField(max_length=20, null=True, blank=True,
                                             help_text="RENT, OWN, MORTGAGE or OTHER")
    person_emp_length = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True,
                                            help_text="Employment length in years")
    loan_amnt = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    loan_intent = models.CharField(max_length=50, null=True, blank=True)
    loan_grade = models.CharField(max_length=5, null=True, blank=True)
    loan_int_rate = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    loan_percent_income = models.DecimalField(max_digits=5, decimal_places=4, null=True, blank=True,
                                              help_text="Debt-to-income ratio, 0.25 = 25% of income")
    cb_person_default_on_file = models.CharField(max_length=1, null=True, blank=True)
    cb_person_cred_hist_length = models.IntegerField(null=True, blank=True)
    loan_status = models.IntegerField(null=True, blank=True)

    def __str__(self):
        return f"Staging row {self.pk}"

    class Meta:
        db_table = 'credit_risk_staging'
        db_table_comment = 'Staging table for raw Kaggle credit risk dataset'
