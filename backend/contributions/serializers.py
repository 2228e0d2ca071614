from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from .models import ContributionPolicy, PaymentRecord


class ContributionPolicySerializer(serializers.ModelSerializer):
    class Meta:
        model = ContributionPolicy
        fields = [
            "id",
            "name",
            "amount",
            "currency",
            "periodicity",
            "grace_period_days",
            "is_active",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class PaymentRecordSerializer(serializers.ModelSerializer):
    member_id = serializers.IntegerField(read_only=True)
    policy_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PaymentRecord
        fields = [
            "id",
            "member_id",
            "policy_id",
            "amount",
            "currency",
            "period_start",
            "period_end",
            "reference",
            "note",
            "recorded_by",
            "recorded_at",
        ]
        read_only_fields = fields


def _normalize_currency(value: str) -> str:
    value = (value or "").strip().upper()
    if len(value) != 3 or not value.isalpha():
        raise serializers.ValidationError("Code devise ISO à 3 lettres attendu.", code="invalid_currency")
    return value


class SetContributionPolicyInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=160)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField(max_length=3)
    periodicity = serializers.ChoiceField(choices=ContributionPolicy.Periodicity.choices)
    grace_period_days = serializers.IntegerField()

    def validate_amount(self, value: Decimal) -> Decimal:
        if value <= 0:
            raise serializers.ValidationError("Le montant doit être strictement positif.", code="amount_not_positive")
        return value

    def validate_currency(self, value: str) -> str:
        return _normalize_currency(value)

    def validate_grace_period_days(self, value: int) -> int:
        if value < 0:
            raise serializers.ValidationError("Le délai de grâce ne peut pas être négatif.", code="grace_negative")
        return value


class RecordPaymentInputSerializer(serializers.Serializer):
    member_id = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField(max_length=3)
    period_start = serializers.DateField()
    period_end = serializers.DateField()
    reference = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    note = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_amount(self, value: Decimal) -> Decimal:
        if value <= 0:
            raise serializers.ValidationError("Le montant doit être strictement positif.", code="amount_not_positive")
        return value

    def validate_currency(self, value: str) -> str:
        return _normalize_currency(value)

    def validate(self, attrs):
        if attrs["period_end"] < attrs["period_start"]:
            raise serializers.ValidationError(
                {"period_end": "La fin de période précède son début."},
                code="period_end_before_start",
            )
        return attrs
