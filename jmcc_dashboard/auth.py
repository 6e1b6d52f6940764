"""
Authentication module for the JMCC dashboard.

Handles password checks, JWT issuing and validation, and user lookup.
"""
import os
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext

from jmcc_dashboard.services import db_operations

load_dotenv()

JWT_ALGORITHM = "HS256"
JWT_EXPIRES_HOURS = int(os.environ.get("JWT_EXPIRES_HOURS", "24"))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

security = HTTPBearer()

def get_jwt_secret() -> str:
    secret = os.environ.get("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET is not set in environment variables.")
    return secret

class AuthError(Exception):
    """Custom exception for authentication errors."""
    def __init__(self, message: str, status_code: int = 401):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, hashed: Optional[str]) -> bool:
    """Check a plain password against a stored bcrypt hash."""
    if not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        # Stored value is not a recognised hash
        return False

def create_access_token(username: str, expires_in: Optional[timedelta] = None) -> str:
    """
    Issue a signed token for a dashboard user.

    Args:
        username: Login name placed in the 'username' claim
        expires_in: Token lifetime, JWT_EXPIRES_HOURS by default

    Returns:
        Encoded JWT
    """
    expires_in = expires_in or timedelta(hours=JWT_EXPIRES_HOURS)
    payload = {
        "username": username,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, get_jwt_secret(), algorithm=JWT_ALGORITHM)

async def authenticate_user(username: str, password: str) -> Optional[Dict[str, Any]]:
    """Return the user row when the credentials match, None otherwise."""
    user = await db_operations.fetch_user(username)
    if user is None or not verify_password(password, user.get("password")):
        return None
    return user

async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict[str, Any]:
    """
    Resolve the dashboard user from the bearer token.

    Args:
        request: FastAPI request object
        credentials: JWT credentials from Authorization header

    Returns:
        The sec_login row of the user, without the password hash

    Raises:
        HTTPException: If the token is invalid or the user no longer exists
    """
    try:
        payload = jwt.decode(
            credentials.credentials,
            get_jwt_secret(),
            algorithms=[JWT_ALGORITHM],
        )

        username = payload.get("username")
        if not username:
            raise AuthError("Token missing username claim")

        user = await db_operations.fetch_user(username)
        if user is None:
            raise AuthError("Unknown user")

        user = {key: value for key, value in user.items() if key != "password"}
        request.state.username = username
        return user

    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AuthError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
