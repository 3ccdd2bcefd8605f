"""The explicit caller identity threaded through every core operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ecoscan.core.exceptions import GuestNotAllowedException, PermissionDeniedException


@dataclass(frozen=True)
class ActorContext:
    account_id: int
    device_id: Optional[str] = None
    is_admin: bool = False
    is_guest: bool = False

    @classmethod
    def for_account(cls, account) -> "ActorContext":
        return cls(
            account_id=account.id,
            device_id=account.device_id,
            is_admin=bool(account.is_admin),
            is_guest=bool(account.is_guest),
        )

    def require_member(self) -> "ActorContext":
        if self.is_guest:
            raise GuestNotAllowedException()
        return self

    def require_admin(self) -> "ActorContext":
        if not self.is_admin:
            raise PermissionDeniedException("Administrator access required")
        return self


__all__ = ["ActorContext"]
