# storefront/services/user_service.py
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel
from storefront.domain.enums import Role
from storefront.domain.errors import UnauthorizedError, ValidationError
from storefront.domain.schemas import RegisterIn
from storefront.repos.user_repo import UserRepo
from storefront.utils.settings import JWT_ALGORITHM, JWT_SECRET, JWT_TTL_SECONDS, MAX_ADMINS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def create_access_token(user_id: int, role: str, ttl: int = JWT_TTL_SECONDS) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return {"id": int(payload["sub"]), "role": payload.get("role", Role.USER.value)}
    except (jwt.PyJWTError, KeyError, ValueError) as e:
        raise UnauthorizedError("Invalid token") from e


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def register(self, payload: RegisterIn) -> UserModel:
        if payload.role == Role.ADMIN and self.repo.count_by_role(Role.ADMIN.value) >= MAX_ADMINS:
            logger.warning(f"Admin limit reached, refusing {payload.username}")
            raise ValidationError(f"Maximum number of admins ({MAX_ADMINS}) reached")

        if self.repo.get_by_username(payload.username):
            raise ValidationError("Username already exists")

        user = self.repo.create_user(
            UserModel(
                username=payload.username,
                email=payload.email,
                password_hash=pwd_context.hash(payload.password),
                role=payload.role.value,
            )
        )
        logger.info(f"User {user.id} registered as {user.role}")
        return user

    def login(self, username: str, password: str) -> str:
        user = self.repo.get_by_username(username)
        if not user or not pwd_context.verify(password, user.password_hash):
            logger.warning(f"Invalid login attempt for {username}")
            raise UnauthorizedError("Invalid credentials")

        logger.info(f"User {user.id} logged in")
        return create_access_token(user.id, user.role)
