# storefront/api/deps.py
from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.enums import Role
from storefront.domain.errors import ForbiddenError, UnauthorizedError
from storefront.services.checkout_service import CheckoutService
from storefront.services.event_publisher import EventPublisher
from storefront.services.image_client import ImageClient
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import PaymentClient
from storefront.services.user_service import decode_access_token

_bearer = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> CurrentUser:
    if credentials is None:
        raise UnauthorizedError("No token provided")
    claims = decode_access_token(credentials.credentials)
    return CurrentUser(id=claims["id"], role=claims["role"])


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


# collaborators, overridable through app.dependency_overrides

def get_payment_client() -> PaymentClient:
    return PaymentClient()


def get_lock_service() -> LockService:
    return LockService()


def get_publisher() -> EventPublisher:
    return EventPublisher()


def get_notifier() -> NotificationService:
    return NotificationService()


def get_image_client() -> ImageClient:
    return ImageClient()


def get_checkout_service(
    db: Session = Depends(get_db),
    payment_client: PaymentClient = Depends(get_payment_client),
    lock_service: LockService = Depends(get_lock_service),
    notifier: NotificationService = Depends(get_notifier),
    publisher: EventPublisher = Depends(get_publisher),
) -> CheckoutService:
    return CheckoutService(
        db=db,
        payment_client=payment_client,
        lock_service=lock_service,
        notifier=notifier,
        publisher=publisher,
    )
