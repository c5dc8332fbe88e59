#File:src/session/models.py

# Pydantic models for auth requests/responses and the stored user record.
from pydantic import BaseModel


class User(BaseModel):
    id: int
    username: str
    password_hash: str
    salt: str
    created_at: float = 0.0

class RegisterRequest(BaseModel):
    # Empty defaults: missing fields reach the explicit 400 checks in UserManager
    username: str = ""
    password: str = ""

class RegisterResponse(BaseModel):
    status: str = "registered"


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""

class LoginResponse(BaseModel):
    token: str  # opaque bearer token, 48 hex chars by default
    username: str

class LogoutResponse(BaseModel):
    status: str = "logged_out"
