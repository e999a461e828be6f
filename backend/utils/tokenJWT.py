# utils/tokenJWT.py
from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from config import settings

CUSTOMER = "customer"
OWNER = "owner"

# Authorization scheme
bearer_scheme = HTTPBearer(auto_error=False)


# Identity carried by the token: { sub: <id>, type: "customer" | "owner" }
class CurrentUser(BaseModel):
    id: int
    type: str


# Generate a new JWT access token (used by tooling and tests)
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# Resolve the caller identity from the bearer token
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        subject = payload.get("sub")
        user_type = payload.get("type")
        # Both the account id and its type must be present
        if subject is None or user_type not in (CUSTOMER, OWNER):
            raise credentials_exception
        return CurrentUser(id=int(subject), type=user_type)
    except (JWTError, ValueError):
        raise credentials_exception


# Dependency factory for account-type access control
def type_required(*allowed_types):
    def _checker(current_user: CurrentUser = Depends(get_current_user)):
        if allowed_types and current_user.type not in allowed_types:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden"
            )
        return current_user
    return _checker


customer_required = type_required(CUSTOMER)
owner_required = type_required(OWNER)
