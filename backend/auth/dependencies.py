import logging

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.principal import PRINCIPAL_MODELS, Principal, PrincipalKind
from backend.core.errors import Forbidden, Unauthenticated
from backend.database import get_db

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> Principal:
    if credentials is None:
        raise Unauthenticated("Not authorized, no token.")

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        logger.warning("Rejected bearer token: %s", exc)
        raise Unauthenticated("Not authorized, token failed.") from exc

    try:
        kind = PrincipalKind(payload.get("kind"))
        principal_id = int(payload.get("sub"))
    except (TypeError, ValueError) as exc:
        raise Unauthenticated("Invalid token subject.") from exc

    record = db.get(PRINCIPAL_MODELS[kind], principal_id)
    if record is None:
        raise Unauthenticated("Not authorized, user not found.")
    return Principal(kind=kind, id=record.id, record=record)


def require_doctor(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_doctor:
        raise Forbidden("Access denied. Doctors only.")
    return principal


def require_patient(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_patient:
        raise Forbidden("Access denied. Patients only.")
    return principal
