from __future__ import annotations

from rest_framework import generics
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from core.responses import success
from core.validation import validate_payload
from members.roles import Actor

from .eligibility import compute_eligibility
from .models import Election
from .serializers import EligibilityInputSerializer, ElectionSerializer


class ElectionListAPIView(generics.GenericAPIView):
    queryset = Election.objects.prefetch_related("allowed_sections", "voter_conditions", "candidate_conditions")
    serializer_class = ElectionSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["status", "type"]

    def get(self, request, *args, **kwargs):
        data = self.get_serializer(self.filter_queryset(self.get_queryset()), many=True).data
        return success({"results": data, "count": len(data)})


class ComputeEligibilityAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        actor = Actor.from_request(request)
        data = validate_payload(EligibilityInputSerializer, request.data)
        result = compute_eligibility(actor, data["member_id"], data.get("election_id"))
        return success(result.as_dict())
