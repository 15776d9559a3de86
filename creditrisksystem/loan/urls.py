from django.urls import path
from .views import ViewLoanView, ViewLoansView

urlpatterns = [
    path('view-loan/<int:loan_id>', ViewLoanView.as_view(), name='view-loan'),
    path('view-loans/<int:customer_id>', ViewLoansView.as_view(), name='view-loans'),
]
