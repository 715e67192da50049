# dependencies.py
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from skillhire.database import get_db
from skillhire.models.profile import Profile
from skillhire.schemas.user import TokenData
from skillhire.utils.jwt_handler import decode_access_token


bearer_scheme = HTTPBearer(auto_error=False)

EMPLOYER = "employer"
EMPLOYEE = "employee"


def get_current_user(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Profile:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    token_data = TokenData(user_id=str(user_id))
    user = db.get(Profile, token_data.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_employer(current_user: Profile = Depends(get_current_user)) -> Profile:
    if current_user.role != EMPLOYER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Employer access required")
    return current_user


def require_employee(current_user: Profile = Depends(get_current_user)) -> Profile:
    if current_user.role != EMPLOYEE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Employee access required")
    return current_user
