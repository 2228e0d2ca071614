from django.urls import path

from .views import ComputeEligibilityAPIView, ElectionListAPIView


urlpatterns = [
    path("elections/", ElectionListAPIView.as_view(), name="election-list"),
    path("eligibility/", ComputeEligibilityAPIView.as_view(), name="eligibility"),
]
