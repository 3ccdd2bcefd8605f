"""Centralized API router registration with feature grouping.

Groups:
- Identity: auth, accounts.
- Rewards: scans.
- Marketplace: listings, orders, messages.
- Inbox and administration: notifications, admin.
"""

from fastapi import APIRouter

from ecoscan.routers import (
    accounts,
    admin,
    auth,
    listings,
    messages,
    notifications,
    orders,
    scans,
)

api_router = APIRouter()

# Identity
api_router.include_router(auth.router)
api_router.include_router(accounts.router)

# Rewards
api_router.include_router(scans.router)

# Marketplace
api_router.include_router(orders.router)
api_router.include_router(listings.router)
api_router.include_router(messages.router)

# Inbox and administration
api_router.include_router(notifications.router)
api_router.include_router(admin.router)

__all__ = ["api_router"]
