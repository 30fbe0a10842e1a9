from components.user import models
from components.user import schemas


def create_jwt_token_payload_from_user(user: models.User) -> dict:
    """Build the access token claims for ``user``."""
    return schemas.UserJWTPayload(sub=str(user.id), role=user.role).model_dump(mode="json")
