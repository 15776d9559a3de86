from django.urls import include, path

urlpatterns = [
    path('api/customers/', include('customer.urls')),
    path('api/loans/', include('loan.urls')),
    path('api/reporting/', include('reporting.urls')),
]
