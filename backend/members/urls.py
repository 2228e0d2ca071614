from django.urls import path

from .views import (
    BootstrapRoleAPIView,
    ChangeRoleAPIView,
    EnsureMemberProfileAPIView,
    MemberDetailAPIView,
    MemberListCreateAPIView,
    MemberMeAPIView,
    SectionDetailAPIView,
    SectionListCreateAPIView,
)


urlpatterns = [
    path("members/ensure-profile/", EnsureMemberProfileAPIView.as_view(), name="member-ensure-profile"),
    path("members/bootstrap-role/", BootstrapRoleAPIView.as_view(), name="member-bootstrap-role"),
    path("members/change-role/", ChangeRoleAPIView.as_view(), name="member-change-role"),
    path("members/me/", MemberMeAPIView.as_view(), name="member-me"),
    path("members/<int:member_id>/", MemberDetailAPIView.as_view(), name="member-detail"),
    path("members/", MemberListCreateAPIView.as_view(), name="member-list"),
    path("sections/<int:section_id>/", SectionDetailAPIView.as_view(), name="section-detail"),
    path("sections/", SectionListCreateAPIView.as_view(), name="section-list"),
]
