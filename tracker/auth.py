from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken
from rest_framework_simplejwt.views import TokenObtainPairView


def add_identity_claims(token, user):
    # "sub" must be a string for PyJWT to decode it again
    token[api_settings.USER_ID_CLAIM] = str(getattr(user, api_settings.USER_ID_FIELD))
    token["email"] = user.email
    token["role"] = user.role
    return token


def issue_access_token(user) -> str:
    """Access token carrying the same claims as the login endpoint issues."""
    return str(add_identity_claims(AccessToken.for_user(user), user))


class FieldSalesTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        # claims on the refresh token are copied onto every access token
        return add_identity_claims(super().get_token(user), user)

    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_account_active:
            raise AuthenticationFailed("Account is not active.")
        return data


class FieldSalesTokenObtainPairView(TokenObtainPairView):
    serializer_class = FieldSalesTokenObtainPairSerializer
