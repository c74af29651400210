"""
URL configuration for furniture_store project.
"""
from django.contrib import admin
from django.urls import path

from ledger.api.views import graphql_view
from ledger.api.webhooks import payment_webhook_view

urlpatterns = [
    path('admin/', admin.site.urls),
    path('graphql/', graphql_view, name='graphql'),
    path('webhooks/payments/', payment_webhook_view, name='payment-webhook'),
]
