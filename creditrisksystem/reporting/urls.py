from django.urls import path
from .views import LoanSummaryViewSet, IntegrityCheckView, PortfolioSummaryView, StagingProfileView

urlpatterns = [
    path('loan-summary/', LoanSummaryViewSet.as_view({'get': 'list'}), name='loan-summary-list'),
    path('loan-summary/<int:loan_id>/', LoanSummaryViewSet.as_view({'get': 'retrieve'}), name='loan-summary-detail'),
    path('integrity-checks/', IntegrityCheckView.as_view(), name='integrity-checks'),
    path('summary/', PortfolioSummaryView.as_view(), name='portfolio-summary'),
    path('staging-profile/', StagingProfileView.as_view(), name='staging-profile'),
]
