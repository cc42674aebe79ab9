"""JWT Token Validation for tokens issued by the help-desk auth service"""
import jwt
from typing import Any, Dict, Optional

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """
    Shared-secret JWT validator

    Claims follow the auth service: usu_id, usu_correo, rol_id, reg_id,
    car_id and es_nacional.
    """

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self.secret = secret or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a bearer token

        Args:
            token: Token with or without the 'Bearer ' prefix

        Returns:
            Decoded token claims

        Raises:
            AuthenticationError: If token is invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": True, "require": ["usu_id"]}
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.PyJWTError as e:
            logger.warning(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

    def get_actor_context(self, token: str) -> ActorContext:
        """Extract actor context from a validated token"""
        claims = self.validate_token(token)
        try:
            return ActorContext(
                user_id=int(claims["usu_id"]),
                email=claims.get("usu_correo"),
                role_id=_optional_int(claims.get("rol_id")),
                region_id=_optional_int(claims.get("reg_id")),
                position_id=_optional_int(claims.get("car_id")),
                is_national=bool(claims.get("es_nacional", False))
            )
        except (TypeError, ValueError):
            logger.warning(f"Malformed identity claims: {list(claims.keys())}")
            raise AuthenticationError("Token carries malformed identity claims")


def _optional_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def get_current_user(authorization: str) -> ActorContext:
    """Get current user from authorization header"""
    return get_jwt_validator().get_actor_context(authorization)
