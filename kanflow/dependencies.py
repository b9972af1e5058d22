"""Request-scoped dependencies: the signed-in user."""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from kanflow.config import settings
from kanflow.database import get_db
from kanflow.exceptions import UnauthorizedError
from kanflow.models import User

bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token issued by the auth provider to a stored user."""
    if credentials is None:
        raise UnauthorizedError()
    try:
        payload = jwt.decode(credentials.credentials, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise UnauthorizedError("Invalid authentication token")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid authentication token")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise UnauthorizedError("Unknown user")
    return user
