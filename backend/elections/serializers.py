from __future__ import annotations

from rest_framework import serializers

from .models import Election


class ElectionSerializer(serializers.ModelSerializer):
    allowed_section_ids = serializers.PrimaryKeyRelatedField(source="allowed_sections", many=True, read_only=True)
    voter_condition_ids = serializers.PrimaryKeyRelatedField(source="voter_conditions", many=True, read_only=True)
    candidate_condition_ids = serializers.PrimaryKeyRelatedField(source="candidate_conditions", many=True, read_only=True)
    is_open = serializers.BooleanField(read_only=True)

    class Meta:
        model = Election
        fields = [
            "id",
            "title",
            "description",
            "type",
            "status",
            "start_at",
            "end_at",
            "is_open",
            "min_seniority",
            "allowed_section_ids",
            "voter_condition_ids",
            "candidate_condition_ids",
            "total_eligible_voters",
            "total_votes_cast",
        ]
        read_only_fields = fields


class EligibilityInputSerializer(serializers.Serializer):
    member_id = serializers.IntegerField(min_value=1)
    election_id = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)
