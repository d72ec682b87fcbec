import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..db import get_db, utcnow
from ..models.models import User
from ..schemas.auth import (
    RegisterRequest,
    LoginRequest,
    TokenResponse,
    ProfileUpdate,
    ChangePasswordRequest,
)
from ..services.directory import email_taken, name_taken, serialize_user
from .security import (
    get_password_hash,
    verify_password,
    create_access_token,
    get_current_user,
)


router = APIRouter(prefix="/auth", tags=["auth"])
log = structlog.get_logger(__name__)


@router.post("/register", response_model=TokenResponse, status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    email = req.email.lower()
    # Forwards are addressed by name, so a name may belong to one account only
    if email_taken(db, email) or name_taken(db, req.name):
        raise HTTPException(status_code=400, detail="User already exists")
    user = User(
        name=req.name,
        email=email,
        password_hash=get_password_hash(req.password),
        department=req.department.value,
        role="user",
        created_at=utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("user_registered", user_id=str(user.id), department=user.department)
    return TokenResponse(access_token=create_access_token(user), user=serialize_user(user))


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == req.email.lower()).first()
    if not user or not user.is_active or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    user.last_login_at = utcnow()
    db.commit()
    return TokenResponse(access_token=create_access_token(user), user=serialize_user(user))


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"success": True, "data": serialize_user(user)}


@router.put("/profile")
def update_profile(req: ProfileUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if req.email is not None:
        email = req.email.lower()
        if email_taken(db, email, exclude_id=user.id):
            raise HTTPException(status_code=400, detail="Email is already taken")
        user.email = email
    db.commit()
    db.refresh(user)
    log.info("profile_updated", user_id=str(user.id))
    return {"success": True, "user": serialize_user(user)}


@router.put("/change-password")
def change_password(req: ChangePasswordRequest, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if not verify_password(req.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    user.password_hash = get_password_hash(req.new_password)
    db.commit()
    log.info("password_changed", user_id=str(user.id))
    return {"success": True, "message": "Password updated successfully"}
