from django.urls import path

from .views import ConditionDetailAPIView, ConditionListCreateAPIView, MemberConditionListAPIView, ValidateConditionAPIView


urlpatterns = [
    path("conditions/validate/", ValidateConditionAPIView.as_view(), name="condition-validate"),
    path("conditions/members/<int:member_id>/", MemberConditionListAPIView.as_view(), name="member-condition-list"),
    path("conditions/<int:condition_id>/", ConditionDetailAPIView.as_view(), name="condition-detail"),
    path("conditions/", ConditionListCreateAPIView.as_view(), name="condition-list"),
]
