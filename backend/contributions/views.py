from __future__ import annotations

from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from core.responses import success
from members.permissions import IsAdmin
from members.roles import Actor

from . import services
from .models import ContributionPolicy, PaymentRecord
from .serializers import ContributionPolicySerializer, PaymentRecordSerializer


class ContributionPolicyListCreateAPIView(generics.GenericAPIView):
    queryset = ContributionPolicy.objects.all().order_by("-created_at", "-id")
    serializer_class = ContributionPolicySerializer
    filterset_fields = ["is_active", "periodicity"]

    def get_permissions(self):
        if self.request.method == "GET":
            return [IsAuthenticated(), IsAdmin()]
        return [IsAuthenticated()]

    def get(self, request, *args, **kwargs):
        data = self.get_serializer(self.filter_queryset(self.get_queryset()), many=True).data
        return success({"results": data, "count": len(data)})

    def post(self, request, *args, **kwargs):
        policy = services.set_active_policy(Actor.from_request(request), request.data)
        return success(ContributionPolicySerializer(policy).data, status=status.HTTP_201_CREATED)


class ActiveContributionPolicyAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        policy = services.get_active_policy()
        return success(ContributionPolicySerializer(policy).data if policy is not None else None)


class PaymentListCreateAPIView(generics.GenericAPIView):
    queryset = PaymentRecord.objects.all().order_by("-recorded_at", "-id")
    serializer_class = PaymentRecordSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["member", "policy"]

    def get_queryset(self):
        queryset = super().get_queryset()
        actor = Actor.from_request(self.request)
        if actor.is_admin:
            return queryset
        return queryset.filter(member_id=actor.id)

    def get(self, request, *args, **kwargs):
        data = self.get_serializer(self.filter_queryset(self.get_queryset()), many=True).data
        return success({"results": data, "count": len(data)})

    def post(self, request, *args, **kwargs):
        payment = services.record_payment(Actor.from_request(request), request.data)
        return success(PaymentRecordSerializer(payment).data, status=status.HTTP_201_CREATED)
