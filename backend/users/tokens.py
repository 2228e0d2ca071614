from __future__ import annotations

from rest_framework_simplejwt.serializers import TokenObtainPairSerializer


class RoleClaimTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Embed the identity provider's role claim into issued tokens."""

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["role"] = getattr(user, "role", "") or ""
        token["email"] = getattr(user, "email", "") or ""
        return token
