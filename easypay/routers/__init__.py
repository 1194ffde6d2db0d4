"""FastAPI routers."""
from .easypay import router as easypay_router

__all__ = ["easypay_router"]
