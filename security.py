from datetime import datetime, timedelta, timezone
from typing import Annotated, Literal, Optional, Union

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from config import Settings
from errors import Forbidden, Unauthenticated

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

COOKIE_NAME = "token"


class AdminIdentity(BaseModel):
    role: Literal["admin"] = "admin"
    id: str
    email: Optional[str] = None


class UserIdentity(BaseModel):
    role: Literal["user"] = "user"
    id: str
    email: Optional[str] = None


Identity = Annotated[Union[AdminIdentity, UserIdentity], Field(discriminator="role")]
_identity_adapter = TypeAdapter(Identity)


# Utility functions

def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(settings: Settings, account: dict) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    to_encode = {
        "id": str(account["_id"]),
        "role": account.get("role", "admin"),
        "email": account.get("email"),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_identity(settings: Settings, token: str) -> Union[AdminIdentity, UserIdentity]:
    credentials_exception = Unauthenticated("Not authorized to access this route")
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return _identity_adapter.validate_python(payload)
    except (JWTError, PydanticValidationError):
        raise credentials_exception


def is_admin(identity) -> bool:
    return isinstance(identity, AdminIdentity)


def can_modify(identity, owner_id) -> bool:
    """Admins override ownership; everyone else must own the record"""
    return is_admin(identity) or identity.id == str(owner_id)


# Guards

async def authenticate(request: Request, token: Optional[str] = Depends(oauth2_scheme)):
    if not token:
        raise Unauthenticated("Not authorized to access this route")
    return decode_identity(request.app.state.settings, token)


CurrentIdentity = Annotated[Union[AdminIdentity, UserIdentity], Depends(authenticate)]


def authorize_roles(*roles: str):
    """Role guard; must run after authenticate"""
    async def role_checker(identity: CurrentIdentity):
        if identity.role not in roles:
            raise Forbidden(f"User role {identity.role} is not authorized to access this route")
        return identity
    return role_checker


AdminOnly = Annotated[AdminIdentity, Depends(authorize_roles("admin"))]
