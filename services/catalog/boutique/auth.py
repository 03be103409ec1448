"""
Authentication and authorization utilities.

Provides password hashing, JWT token creation/validation, the admin seed and
the FastAPI dependency that protects every catalog mutation.
"""
from datetime import datetime, timedelta
from typing import Optional
import logging
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from . import models, schemas
from .config import (
    SECRET_KEY,
    ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ADMIN_USERNAME,
    ADMIN_PASSWORD,
)
from .exceptions import AuthError

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Missing credentials are reported as AuthError instead of FastAPI's default
security = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        True if the password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password for secure storage.

    Args:
        password: The plain text password to hash

    Returns:
        The hashed password
    """
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing the claims to encode in the token
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def authenticate_admin(db: Session, username: str, password: str) -> models.AdminUser:
    """
    Check admin credentials.

    Args:
        db: Database session
        username: Admin login name
        password: Plain text password to verify

    Returns:
        The matching AdminUser

    Raises:
        AuthError: if the user does not exist or the password is wrong
    """
    logger.info(f"Login attempt for username: {username}")
    user = db.query(models.AdminUser).filter(models.AdminUser.username == username).first()
    if user is None:
        logger.info("Login failed: user not found")
        raise AuthError("Invalid username or password")
    if not verify_password(password, user.password_hash):
        logger.info("Login failed: password mismatch")
        raise AuthError("Invalid username or password")
    logger.info("Login successful")
    return user


def issue_token(user: models.AdminUser) -> schemas.Token:
    access_token = create_access_token(data={"sub": str(user.id), "username": user.username})
    return schemas.Token(access_token=access_token)


def decode_access_token(token: str) -> schemas.AdminIdentity:
    """
    Validate a JWT and return the admin identity it carries.

    Raises:
        AuthError: if the token is malformed, expired or missing claims
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id_str: str = payload.get("sub")
        username: str = payload.get("username")
        if user_id_str is None or username is None:
            logger.error("Token is missing 'sub' or 'username' claim")
            raise AuthError("Could not validate credentials")
        return schemas.AdminIdentity(id=int(user_id_str), username=username)
    except (JWTError, ValueError) as e:
        logger.error(f"JWT validation error: {e}")
        raise AuthError("Could not validate credentials") from e


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> schemas.AdminIdentity:
    """
    FastAPI dependency that requires a valid admin bearer token.

    Args:
        credentials: HTTP Authorization credentials (injected)

    Returns:
        Identity of the calling admin

    Raises:
        AuthError: if no token was sent or the token is invalid
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Unauthorized")
    return decode_access_token(credentials.credentials)


def seed_admin(db: Session, username: str = ADMIN_USERNAME, password: str = ADMIN_PASSWORD) -> models.AdminUser:
    """
    Create the admin account if it does not exist yet.

    Args:
        db: Database session
        username: Admin login name
        password: Admin password, stored hashed

    Returns:
        The existing or newly created AdminUser
    """
    logger.info(f"Checking for admin user: {username}")
    user = db.query(models.AdminUser).filter(models.AdminUser.username == username).first()
    if user is not None:
        logger.info(f"Admin user '{username}' already exists.")
        return user

    user = models.AdminUser(username=username, password_hash=get_password_hash(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Admin user '{username}' seeded successfully.")
    return user
