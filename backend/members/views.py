from __future__ import annotations

from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from core.exceptions import NotFound
from core.responses import success

from . import services
from .models import Member, Section
from .permissions import IsAdmin
from .roles import Actor, require_self_or_admin
from .serializers import MemberSerializer, SectionSerializer


class EnsureMemberProfileAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        member, created = services.ensure_member_profile(Actor.from_request(request))
        return success(
            {"member": MemberSerializer(member).data, "created": created},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class BootstrapRoleAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        member = services.bootstrap_role(Actor.from_request(request))
        return success({"role": member.role})


class ChangeRoleAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        member = services.change_role(Actor.from_request(request), request.data)
        return success({"member_id": member.pk, "role": member.role})


class SectionListCreateAPIView(generics.GenericAPIView):
    queryset = Section.objects.all().order_by("name", "id")
    serializer_class = SectionSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["city", "region"]

    def get(self, request, *args, **kwargs):
        data = self.get_serializer(self.filter_queryset(self.get_queryset()), many=True).data
        return success({"results": data, "count": len(data)})

    def post(self, request, *args, **kwargs):
        section = services.create_section(Actor.from_request(request), request.data)
        return success(SectionSerializer(section).data, status=status.HTTP_201_CREATED)


class SectionDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, section_id: int, *args, **kwargs):
        section = Section.objects.filter(pk=section_id).first()
        if section is None:
            raise NotFound("Section introuvable.", reason="section_not_found")
        return success(SectionSerializer(section).data)

    def patch(self, request, section_id: int, *args, **kwargs):
        section = services.update_section(Actor.from_request(request), section_id, request.data)
        return success(SectionSerializer(section).data)

    def delete(self, request, section_id: int, *args, **kwargs):
        services.delete_section(Actor.from_request(request), section_id)
        return success({"section_id": section_id})


class MemberListCreateAPIView(generics.GenericAPIView):
    queryset = Member.objects.select_related("section").all().order_by("-created_at")
    serializer_class = MemberSerializer
    filterset_fields = ["section", "status", "role", "contribution_up_to_date"]

    def get_permissions(self):
        if self.request.method == "GET":
            return [IsAuthenticated(), IsAdmin()]
        return [IsAuthenticated()]

    def get(self, request, *args, **kwargs):
        data = self.get_serializer(self.filter_queryset(self.get_queryset()), many=True).data
        return success({"results": data, "count": len(data)})

    def post(self, request, *args, **kwargs):
        member, temporary_password = services.create_member(Actor.from_request(request), request.data)
        return success(
            {"member": MemberSerializer(member).data, "temporary_password": temporary_password},
            status=status.HTTP_201_CREATED,
        )


class MemberMeAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        actor = Actor.from_request(request)
        member = Member.objects.select_related("section").filter(pk=actor.id).first()
        if member is None:
            raise NotFound("Profil adhérent absent.", reason="member_not_found")
        return success(MemberSerializer(member).data)


class MemberDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, member_id: int, *args, **kwargs):
        require_self_or_admin(Actor.from_request(request), member_id)
        member = Member.objects.select_related("section").filter(pk=member_id).first()
        if member is None:
            raise NotFound("Adhérent introuvable.", reason="member_not_found")
        return success(MemberSerializer(member).data)

    def patch(self, request, member_id: int, *args, **kwargs):
        member = services.update_member(Actor.from_request(request), member_id, request.data)
        return success(MemberSerializer(member).data)
