"""
Kitchen routers - /api/orders/advance-status, /api/kitchen/*
Handles kitchen staff operations.
"""

from .orders import router as kitchen_router

__all__ = ["kitchen_router"]
