"""Login and current user: admin credentials from settings; the token is for the frontend's Bearer header only."""
import secrets
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.config import settings
from bapp.database import get_db
from bapp import crud
from bapp.schemas import ProfileRead

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    email: str


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """ADMIN_EMAIL / ADMIN_PASSWORD; login is disabled while no password is configured."""
    email = body.email.strip().lower()
    if (
        settings.admin_password
        and email == settings.admin_email.lower()
        and secrets.compare_digest(body.password, settings.admin_password)
    ):
        await crud.get_or_create_profile(db, email, role="admin", full_name="Administrator")
        return LoginResponse(access_token=secrets.token_urlsafe(32), email=email)
    raise HTTPException(status_code=401, detail="Email atau password salah. Silakan periksa kembali.")


@router.get("/me", response_model=ProfileRead)
async def me(
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    db: AsyncSession = Depends(get_db),
):
    """Profile of the X-User-Email header (the admin when absent)."""
    email = (x_user_email or settings.admin_email).strip()
    profile = await crud.get_profile_by_email(db, email)
    if profile is None:
        if email.lower() != settings.admin_email.lower():
            raise HTTPException(status_code=404, detail="Pengguna tidak ditemukan.")
        profile = await crud.get_or_create_profile(db, email, role="admin", full_name="Administrator")
    return profile
