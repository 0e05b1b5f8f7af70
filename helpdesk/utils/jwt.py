"""JWT Token Validation - HS256 bearer tokens resolved to stored users"""
import jwt
from typing import Any, Dict, Optional

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from ..repositories.user_repo import UserRepository
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """
    Shared-secret JWT validator

    Tokens are issued elsewhere; here they are only verified. The role
    always comes from the stored user, never from the token.
    """

    def __init__(
        self,
        user_repo: Optional[UserRepository] = None,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None
    ):
        self.user_repo = user_repo or UserRepository()
        self.secret = secret or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate JWT token

        Args:
            token: Bearer token (with or without 'Bearer ' prefix)

        Returns:
            Decoded token claims

        Raises:
            AuthenticationError: If token is missing or invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")

        # Remove 'Bearer ' prefix if present
        if token.startswith("Bearer "):
            token = token[7:]

        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": True}
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.PyJWTError as e:
            logger.warning(f"JWT validation error: {e}")
            raise AuthenticationError("Invalid token")

    def get_actor_context(self, token: str) -> ActorContext:
        """
        Resolve a token to the active user it was issued for

        Raises:
            AuthenticationError: If the token is invalid or the user is
                unknown or inactive
        """
        claims = self.validate_token(token)

        user_id = claims.get("sub") or claims.get("id")
        if not user_id:
            logger.warning(f"No subject in token claims. Available claims: {list(claims.keys())}")
            raise AuthenticationError("Unable to determine user from token")

        user = self.user_repo.get_user(str(user_id))
        if user is None:
            raise AuthenticationError("User not found", details={"user_id": user_id})
        if not user.is_active:
            logger.info("Inactive user rejected", extra={"user_id": user.user_id})
            raise AuthenticationError("User is inactive", details={"user_id": user.user_id})

        return user.to_actor()
