"""
Health Check Route — GET /health
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from hyplint.api.dependencies import get_registry
from hyplint.config import VERSION
from hyplint.core.registry import Registry

router = APIRouter()


@router.get("/health")
async def health(registry: Registry = Depends(get_registry)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": VERSION,
        "checkers": len(registry),
    }
