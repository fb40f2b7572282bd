# cmms_app/auth.py
from datetime import datetime, timedelta, timezone

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from jose import jwt
from passlib.context import CryptContext

from cmms_app.config import ALGORITHM, get_secret_key, get_token_expire_minutes
from cmms_app.database import fetch_one, get_db

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
router = APIRouter()
log = structlog.get_logger()


def hash_password(plain_password):
    return pwd_context.hash(plain_password)


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=get_token_expire_minutes())
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, get_secret_key(), algorithm=ALGORITHM)


def token_for_user(user):
    return create_access_token({
        "sub": user["id"],
        "role": user["role"],
        "email": user["email"],
    })


@router.post("/login")
def login(form_data: OAuth2PasswordRequestForm = Depends()):
    conn = get_db()
    try:
        user = fetch_one(conn, """
            SELECT id, email, role, password_hash
            FROM users WHERE email = ?
        """, (form_data.username,))
    finally:
        conn.close()

    if not user or not verify_password(form_data.password, user["password_hash"]):
        log.info("login_failed", email=form_data.username)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return {
        "access_token": token_for_user(user),
        "token_type": "bearer",
        "role": user["role"],
        "user_id": user["id"],
    }
