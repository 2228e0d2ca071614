from django.urls import path

from .views import ActiveContributionPolicyAPIView, ContributionPolicyListCreateAPIView, PaymentListCreateAPIView


urlpatterns = [
    path("contributions/policies/active/", ActiveContributionPolicyAPIView.as_view(), name="contribution-policy-active"),
    path("contributions/policies/", ContributionPolicyListCreateAPIView.as_view(), name="contribution-policy-list"),
    path("contributions/payments/", PaymentListCreateAPIView.as_view(), name="contribution-payment-list"),
]
