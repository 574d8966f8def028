"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from leaveledger.api.v1.endpoints import auth, balances, compoff, health

api_router = APIRouter()

# Auth (login, refresh, logout, me)
api_router.include_router(auth.router)

# Comp-off grants and permission entries
api_router.include_router(compoff.router)

# Ledger projections, month close, reopen, seeding
api_router.include_router(balances.router)

# Health
api_router.include_router(health.router)
