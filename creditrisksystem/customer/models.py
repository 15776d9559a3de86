from django.db import models
from django.db.models import Q


class Region(models.TextChoices):
    NORTHEAST = 'Northeast'
    SOUTHEAST = 'Southeast'
    MIDWEST = 'Midwest'
    SOUTHWEST = 'Southwest'
    WEST = 'West'


class Customer(models.Model):
    customer_id = models.IntegerField(primary_key=True, help_text="Unique customer identifier")
    person_age = models.IntegerField(null=True, blank=True)
    person_income = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    person_home_ownership = models.CharField(max_length=20, null=True, blank=True)
    person_emp_length = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    historical_default = models.CharField(max_length=1, null=True, blank=True,
                                          help_text="Y = previous default history, N = no history")
    credit_history_length = models.IntegerField(null=True, blank=True,
                                                help_text="Length of credit history in years")
    region = models.CharField(max_length=20, choices=Region.choices)
    source_row = models.BigIntegerField(null=True, blank=True, help_text="Staging row this customer came from")

    def __str__(self):
        return f"Customer {self.customer_id}"

    class Meta:
        db_table = 'customers'
        db_table_comment = 'Customer demographic and credit history information'
        # no age bound: the source data has ages above 100 and those rows are kept
        constraints = [
            models.CheckConstraint(condition=Q(person_income__gte=0), name='chk_income'),
            models.CheckConstraint(condition=Q(person_emp_length__gte=0), name='chk_emp_length'),
        ]
        #using indexes to speed up the reporting filters
        indexes = [
            models.Index(fields=["person_income"], name='idx_customers_income'),
            models.Index(fields=["person_age"], name='idx_customers_age'),
            models.Index(fields=["region"], name='idx_customers_region'),
        ]
