from __future__ import annotations

from rest_framework import serializers

from .models import Member, Section


class SectionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Section
        fields = ["id", "name", "city", "region", "member_count", "created_at", "updated_at"]
        read_only_fields = fields


class MemberSerializer(serializers.ModelSerializer):
    uid = serializers.CharField(read_only=True)
    section_id = serializers.IntegerField(read_only=True, allow_null=True)
    section_name = serializers.CharField(source="section.name", read_only=True, default="")

    class Meta:
        model = Member
        fields = [
            "uid",
            "email",
            "first_name",
            "last_name",
            "phone",
            "section_id",
            "section_name",
            "role",
            "status",
            "registration_source",
            "email_verified",
            "password_change_required",
            "contribution_up_to_date",
            "joined_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# --- Per-operation inputs -------------------------------------------------
# Each operation declares exactly the fields it accepts; the self/admin split
# of `update_member` is two serializers rather than one filtered mapping.


class ChangeRoleInputSerializer(serializers.Serializer):
    member_id = serializers.IntegerField(min_value=1)
    new_role = serializers.ChoiceField(choices=Member.Role.choices)


class SectionCreateInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=160)
    city = serializers.CharField(max_length=120)
    region = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")


class SectionUpdateInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=160, required=False)
    city = serializers.CharField(max_length=120, required=False)
    region = serializers.CharField(max_length=120, required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Aucun champ à mettre à jour.", code="no_updates")
        return attrs


class MemberCreateInputSerializer(serializers.Serializer):
    email = serializers.EmailField()
    first_name = serializers.CharField(max_length=120)
    last_name = serializers.CharField(max_length=120)
    section_id = serializers.IntegerField(min_value=1)
    phone = serializers.CharField(max_length=40, required=False, allow_blank=True, default="")
    status = serializers.ChoiceField(choices=Member.Status.choices, required=False, default=Member.Status.PENDING)

    def validate_email(self, value: str) -> str:
        return value.strip().lower()


class MemberSelfUpdateInputSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=120, required=False)
    last_name = serializers.CharField(max_length=120, required=False)
    phone = serializers.CharField(max_length=40, required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Aucun champ à mettre à jour.", code="no_updates")
        return attrs


class MemberAdminUpdateInputSerializer(MemberSelfUpdateInputSerializer):
    section_id = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=Member.Status.choices, required=False)


SELF_MUTABLE_FIELDS = frozenset(MemberSelfUpdateInputSerializer().fields)
ADMIN_MUTABLE_FIELDS = frozenset(MemberAdminUpdateInputSerializer().fields)
