from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers

from .models import Condition, MemberCondition


class ConditionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Condition
        fields = ["id", "name", "description", "type", "validity_duration", "is_active", "created_at", "updated_at"]
        read_only_fields = fields


class MemberConditionSerializer(serializers.ModelSerializer):
    member_id = serializers.IntegerField(read_only=True)
    condition_id = serializers.IntegerField(read_only=True)
    condition_name = serializers.CharField(source="condition.name", read_only=True)
    currently_satisfied = serializers.SerializerMethodField()

    class Meta:
        model = MemberCondition
        fields = [
            "id",
            "member_id",
            "condition_id",
            "condition_name",
            "validated",
            "validated_by",
            "validated_at",
            "expires_at",
            "note",
            "evidence",
            "currently_satisfied",
        ]
        read_only_fields = fields

    def get_currently_satisfied(self, obj: MemberCondition) -> bool:
        now = (self.context or {}).get("now") or timezone.now()
        return obj.is_satisfied(now)


class ConditionCreateInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=160)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    type = serializers.ChoiceField(choices=Condition.Type.choices)
    validity_duration = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)
    is_active = serializers.BooleanField(required=False, default=True)


class ConditionUpdateInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=160, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=Condition.Type.choices, required=False)
    validity_duration = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    is_active = serializers.BooleanField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Aucun champ à mettre à jour.", code="no_updates")
        return attrs


class ValidateConditionInputSerializer(serializers.Serializer):
    member_id = serializers.IntegerField(min_value=1)
    condition_id = serializers.IntegerField(min_value=1)
    validated = serializers.BooleanField()
    note = serializers.CharField(required=False, allow_blank=True, default="")
    evidence = serializers.CharField(required=False, allow_blank=True, default="")
