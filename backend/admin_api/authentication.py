"""
JWT authentication for admins and sub-admins.

Staff tokens carry 'staff_id' and 'role' claims instead of 'user_id', so they
resolve to an Admin or SubAdmin row and never to an end user.
"""
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication

from .models import Admin, SubAdmin

STAFF_MODELS = {
    Admin.ROLE: Admin,
    SubAdmin.ROLE: SubAdmin,
}


class StaffJWTAuthentication(JWTAuthentication):
    """JWT auth that only accepts admin and sub-admin tokens."""

    def authenticate(self, request):
        header = self.get_header(request)
        if header is None:
            return None
        raw_token = self.get_raw_token(header)
        if raw_token is None:
            return None

        validated_token = self.get_validated_token(raw_token)
        model = STAFF_MODELS.get(validated_token.get('role'))
        if model is None:
            return None
        return self.get_staff(model, validated_token), validated_token

    def get_staff(self, model, validated_token):
        try:
            actor = model.objects.get(pk=validated_token.get('staff_id'))
        except model.DoesNotExist:
            raise AuthenticationFailed(f'{model.__name__} not found', code='staff_not_found')
        if not actor.can_login():
            raise AuthenticationFailed('Account is deactivated', code='staff_inactive')
        return actor
