"""
Rules Route — GET /rules
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from hyplint.api.dependencies import get_registry
from hyplint.core.registry import Registry
from hyplint.models.rule_models import CheckerInfo

router = APIRouter()


@router.get("/rules", response_model=list[CheckerInfo])
async def list_rules(registry: Registry = Depends(get_registry)):
    """Every registered checker with its defaults."""
    return registry.describe()
