"""Pydantic schemas for accounts, authentication and stats."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AccountCreate(BaseModel):
    email: EmailStr
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=6, max_length=128)
    device_id: Optional[str] = None


class AccountLogin(BaseModel):
    email: EmailStr
    password: str
    device_id: Optional[str] = None


class GuestCreate(BaseModel):
    device_id: Optional[str] = None


class AccountOut(BaseModel):
    id: int
    email: Optional[str] = None
    username: Optional[str] = None
    is_guest: bool
    is_admin: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatsOut(BaseModel):
    total_points: int
    level: int
    streak: int
    items_recycled: int
    pending_points: int
    scans_today: int


class AccountMe(AccountOut):
    stats: StatsOut


class MigrationSummary(BaseModel):
    migrated: bool
    scans_moved: int = 0
    total_points: int = 0


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account: AccountOut
    migration: Optional[MigrationSummary] = None


class GuestSession(BaseModel):
    device_id: str
    account: AccountOut


class AdminRoleUpdate(BaseModel):
    is_admin: bool


__all__ = [
    "AccountCreate",
    "AccountLogin",
    "AccountMe",
    "AccountOut",
    "AdminRoleUpdate",
    "GuestCreate",
    "GuestSession",
    "MigrationSummary",
    "StatsOut",
    "Token",
]
