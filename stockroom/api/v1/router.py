from fastapi import APIRouter
from stockroom.api.v1 import (
    auth,
    users,
    materials,
    transactions,
    assets,
    borrows,
    purchase_requests,
    notifications,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(materials.router, prefix="/materials", tags=["materials"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(assets.router, prefix="/assets", tags=["assets"])
api_router.include_router(borrows.router, prefix="/borrows", tags=["borrows"])
api_router.include_router(purchase_requests.router, prefix="/purchase-requests", tags=["purchase-requests"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
