from rest_framework_simplejwt.tokens import RefreshToken


def _pair(refresh):
    return {
        'access': str(refresh.access_token),
        'refresh': str(refresh),
    }


def tokens_for_user(user):
    refresh = RefreshToken.for_user(user)
    refresh['role'] = 'user'
    return _pair(refresh)


def tokens_for_staff(actor):
    # Staff tokens carry no user_id claim so the default JWTAuthentication rejects them
    refresh = RefreshToken()
    refresh['staff_id'] = actor.pk
    refresh['role'] = actor.ROLE
    return _pair(refresh)
