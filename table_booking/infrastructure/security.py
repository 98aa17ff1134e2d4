# table_booking/infrastructure/security.py

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError

from table_booking.domain.exceptions import UnauthorizedError
from table_booking.domain.principal import Principal, Role
from table_booking.infrastructure.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    JWT_ALGORITHM,
    JWT_SECRET,
)


def create_access_token(
    identity: str,
    role: Role = Role.USER,
    expires_delta: Optional[timedelta] = None,
    secret: str = JWT_SECRET,
    algorithm: str = JWT_ALGORITHM,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"exp": expire, "sub": str(identity), "role": Role(role).value}
    return jwt.encode(to_encode, secret, algorithm=algorithm)


class JWTPrincipalResolver:
    """Turns a bearer token into a Principal, or raises UnauthorizedError."""

    def __init__(self, secret: str = JWT_SECRET, algorithm: str = JWT_ALGORITHM):
        self.secret = secret
        self.algorithm = algorithm

    def resolve(self, token: str | None) -> Principal:
        if not token:
            raise UnauthorizedError("No token provided")

        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            raise UnauthorizedError("Invalid token") from exc

        identity = payload.get("sub") or payload.get("id")
        if identity is None or str(identity) == "":
            raise UnauthorizedError("Token carries no identity")

        try:
            role = Role(payload.get("role", Role.USER.value))
        except ValueError as exc:
            raise UnauthorizedError("Token carries an unknown role") from exc

        return Principal(id=str(identity), role=role)
