"""
Authentication and authorization handler
Resolves the bearer token into a RequestContext that services use for
audit attribution and capability checks
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from jose import JWTError, jwt

from scheduler.config import SECRET_KEY, ACCESS_TOKEN_EXPIRE_MINUTES

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=4)
security = HTTPBearer()

# Capability -> roles allowed to exercise it
CAPABILITIES = {
    "schedule:read": {"user", "supervisor", "admin"},
    "schedule:write": {"supervisor", "admin"},
    "orders:clear_all": {"admin"},
    "users:manage": {"admin"},
}

@dataclass
class RequestContext:
    """Who is calling; passed from the routers into the services"""
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    role: str = "user"
    email: Optional[str] = None
    
    def can(self, capability: str) -> bool:
        return self.role in CAPABILITIES.get(capability, set())

class AuthHandler:
    """Handles authentication and authorization"""
    
    def __init__(self):
        self.pwd_context = pwd_context
    
    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return self.pwd_context.verify(plain_password, hashed_password)
    
    def get_password_hash(self, password: str) -> str:
        """Hash a password"""
        return self.pwd_context.hash(password)
    
    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None):
        """Create a JWT access token"""
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        
        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
        return encoded_jwt
    
    def verify_token(self, token: str) -> dict:
        """Verify and decode a JWT token"""
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
            return payload
        except JWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )

auth_handler = AuthHandler()

def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> RequestContext:
    """Dependency to get current authenticated user"""
    token = credentials.credentials
    payload = auth_handler.verify_token(token)
    
    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    return RequestContext(
        user_id=int(user_id),
        user_name=payload.get("name") or payload.get("username"),
        role=payload.get("role", "user"),
        email=payload.get("email"),
    )

# Role-based access control
class RoleChecker:
    """Check user roles for authorization"""
    
    def __init__(self, allowed_roles: list):
        self.allowed_roles = allowed_roles
    
    def __call__(self, user: RequestContext = Depends(get_current_user)) -> RequestContext:
        if user.role not in self.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted"
            )
        return user

# Common role checkers
admin_required = RoleChecker(["admin"])
supervisor_required = RoleChecker(["supervisor", "admin"])
user_required = RoleChecker(["user", "supervisor", "admin"])
