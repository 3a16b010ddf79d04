from datetime import datetime, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from signflow.api.dependencies.services import get_app_settings
from signflow.core.config import Settings

OPERATOR_ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


def issue_operator_token(settings: Settings, subject: str, ttl_seconds: int = 900) -> str:
    now = int(datetime.now(timezone.utc).timestamp())
    claims = {"sub": subject, "iat": now, "exp": now + ttl_seconds}
    return jwt.encode(claims, settings.secret_key, algorithm=OPERATOR_ALGORITHM)


async def get_current_operator(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> str:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = jwt.decode(credentials.credentials, settings.secret_key, algorithms=[OPERATOR_ALGORITHM])
    except JWTError as exc:
        raise credentials_exception from exc

    subject: str | None = payload.get("sub")
    exp = payload.get("exp")
    if subject is None or exp is None:
        raise credentials_exception
    if datetime.fromtimestamp(exp, tz=timezone.utc) < datetime.now(timezone.utc):
        raise credentials_exception
    return subject
