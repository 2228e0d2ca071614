from __future__ import annotations

from django.utils import timezone
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from core.exceptions import NotFound
from core.responses import success
from members.roles import Actor, require_self_or_admin

from . import services
from .models import Condition, MemberCondition
from .serializers import ConditionSerializer, MemberConditionSerializer


class ConditionListCreateAPIView(generics.GenericAPIView):
    queryset = Condition.objects.all().order_by("name", "id")
    serializer_class = ConditionSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["is_active", "type"]

    def get(self, request, *args, **kwargs):
        data = self.get_serializer(self.filter_queryset(self.get_queryset()), many=True).data
        return success({"results": data, "count": len(data)})

    def post(self, request, *args, **kwargs):
        condition = services.create_condition(Actor.from_request(request), request.data)
        return success(ConditionSerializer(condition).data, status=status.HTTP_201_CREATED)


class ConditionDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, condition_id: int, *args, **kwargs):
        condition = Condition.objects.filter(pk=condition_id).first()
        if condition is None:
            raise NotFound("Condition introuvable.", reason="condition_not_found")
        return success(ConditionSerializer(condition).data)

    def patch(self, request, condition_id: int, *args, **kwargs):
        condition = services.update_condition(Actor.from_request(request), condition_id, request.data)
        return success(ConditionSerializer(condition).data)


class ValidateConditionAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        record = services.validate_condition(Actor.from_request(request), request.data)
        return success(MemberConditionSerializer(record).data)


class MemberConditionListAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, member_id: int, *args, **kwargs):
        require_self_or_admin(Actor.from_request(request), member_id)
        records = MemberCondition.objects.select_related("condition").filter(member_id=member_id)
        data = MemberConditionSerializer(records, many=True, context={"now": timezone.now()}).data
        return success({"results": data, "count": len(data)})
