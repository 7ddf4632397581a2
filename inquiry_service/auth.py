"""
Authentication utilities - single admin account, JWT and password checks.
"""
import hmac
import os
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .schemas import AdminRef, AdminUser

# Configuration
JWT_SECRET = os.getenv("JWT_SECRET", "inquiry-service-dev-secret-change-in-prod")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))

# Used only when ADMIN_PASSWORD_HASH holds a bcrypt hash
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=12,
)

# Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)


def admin_id() -> str:
    return os.getenv("ADMIN_ID", "admin-001")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt (for producing ADMIN_PASSWORD_HASH)."""
    return pwd_context.hash(password)


def verify_admin_credentials(email: str, password: str) -> bool:
    """
    Check a login against the configured admin account.
    Compares in constant time; a bcrypt ADMIN_PASSWORD_HASH takes precedence
    over a plain ADMIN_PASSWORD.
    """
    admin_email = os.getenv("ADMIN_EMAIL", "")
    password_hash = os.getenv("ADMIN_PASSWORD_HASH", "")
    plain_password = os.getenv("ADMIN_PASSWORD", "")

    if not admin_email or not (password_hash or plain_password):
        return False

    email_ok = hmac.compare_digest(email.strip().lower().encode(), admin_email.strip().lower().encode())
    if password_hash:
        try:
            password_ok = pwd_context.verify(password, password_hash)
        except (ValueError, TypeError):
            password_ok = False
    else:
        password_ok = hmac.compare_digest(password.encode(), plain_password.encode())
    return email_ok and password_ok


def create_access_token(email: str) -> str:
    """Create a JWT access token for the admin."""
    expire = datetime.utcnow() + timedelta(hours=JWT_EXPIRATION_HOURS)
    payload = {
        "sub": admin_id(),
        "email": email,
        "role": "admin",
        "exp": expire,
        "iat": datetime.utcnow(),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Optional[AdminUser]:
    """
    Verify a JWT token and return the admin identity if valid.
    Returns None if token is invalid or expired.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None

    subject = payload.get("sub")
    if subject is None or payload.get("role") != "admin":
        return None
    return AdminUser(id=subject, email=payload.get("email", ""), role="admin")


def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> AdminUser:
    """
    FastAPI dependency to get the authenticated admin.
    Raises HTTPException if not authenticated.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to access this route. Please provide a valid token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    admin = verify_token(credentials.credentials)
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return admin


def resolve_admin(ref: Optional[str]) -> Optional[AdminRef]:
    """
    Resolve a weak admin reference for display.
    Only the configured admin is known; other ids come back bare.
    """
    if not ref:
        return None
    if ref == admin_id():
        return AdminRef(
            id=ref,
            name=os.getenv("ADMIN_NAME", "Administrator"),
            email=os.getenv("ADMIN_EMAIL") or None,
        )
    return AdminRef(id=ref)
