# table_booking/api/deps.py

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from table_booking.application.event_service import EventService
from table_booking.application.reservation_engine import ReservationEngine
from table_booking.domain.exceptions import UnauthorizedError
from table_booking.domain.principal import Principal
from table_booking.infrastructure.security import JWTPrincipalResolver


bearer_scheme = HTTPBearer(auto_error=False)


def get_reservation_engine(request: Request) -> ReservationEngine:
    return request.app.state.reservation_engine


def get_event_service(request: Request) -> EventService:
    return request.app.state.event_service


def get_principal_resolver(request: Request) -> JWTPrincipalResolver:
    return request.app.state.principal_resolver


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    resolver: JWTPrincipalResolver = Depends(get_principal_resolver),
) -> Principal:
    token = credentials.credentials if credentials else None
    try:
        return resolver.resolve(token)
    except UnauthorizedError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": exc.kind, "message": str(exc)},
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def get_current_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "forbidden", "message": "Administrator role required"},
        )
    return principal
