# bookshelf/models.py
from typing import Optional
from pydantic import BaseModel


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str
    confirm_password: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class User(BaseModel):
    """Stored account. ``password_hash`` never leaves the server."""

    id: int
    username: str
    email: str
    password_hash: str
    salt: str

    def public(self) -> "PublicUser":
        return PublicUser(id=self.id, username=self.username, email=self.email)


class PublicUser(BaseModel):
    id: int
    username: str
    email: str


class LoginResponse(PublicUser):
    token: str


class MessageResponse(BaseModel):
    message: str
