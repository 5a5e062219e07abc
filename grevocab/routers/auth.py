from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlmodel import Session, select

from grevocab.db import get_session
from grevocab.models import User
from grevocab.auth import (
    AuthError, bearer_scheme, create_access_token, create_refresh_token, get_current_user,
    get_password_hash, refresh_access_token, revoke_token, validate_credentials, verify_password,
)
from grevocab.middleware.rate_limit import auth_limit


router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: User) -> dict:
    return {
        "access_token": create_access_token(str(user.id)),
        "refresh_token": create_refresh_token(str(user.id)),
        "token_type": "bearer",
        "user": {"id": user.id, "email": user.email},
    }


@router.post("/register")
@auth_limit()
def register(request: Request, email: str = Form(...), password: str = Form(...), session: Session = Depends(get_session)):
    email = email.strip().lower()
    try:
        validate_credentials(email, password)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    user = User(email=email, hashed_password=get_password_hash(password))
    session.add(user)
    session.commit()
    session.refresh(user)
    return _token_response(user)


@router.post("/login")
@auth_limit()
def login(request: Request, email: str = Form(...), password: str = Form(...), session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == email.strip().lower())).first()
    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return _token_response(user)


@router.post("/logout")
def logout(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme), user: User = Depends(get_current_user)):
    revoke_token(credentials.credentials)
    return {"message": "Signed out"}


@router.post("/refresh")
def refresh(refresh_token: str = Form(...)):
    token = refresh_access_token(refresh_token)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"id": user.id, "email": user.email, "created_at": user.created_at.isoformat()}
