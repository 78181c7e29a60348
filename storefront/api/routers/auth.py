# storefront/api/routers/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import LoginIn, MessageOut, RegisterIn, TokenOut
from storefront.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=MessageOut, status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    UserService(db).register(payload)
    return {"message": "Registration successful"}


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    return {"token": UserService(db).login(payload.username, payload.password)}
