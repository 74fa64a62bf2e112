from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.rules import RuleConfig
from app.models.user import User
from app.schemas.responses import SuccessResponse
from app.schemas.rules import RuleSettings
from app.services.settings_service import RuleConfigStore

router = APIRouter()


@router.get("/rules", response_model=SuccessResponse[RuleSettings])
async def get_rules(
    rules: RuleConfig = Depends(deps.get_rules),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """Current rules as flat key/value pairs"""
    return SuccessResponse(data=RuleSettings(values=rules.to_settings()))


@router.put("/rules", response_model=SuccessResponse[RuleSettings])
async def update_rules(
    rules_in: RuleSettings,
    db: AsyncSession = Depends(deps.get_db),
    store: RuleConfigStore = Depends(deps.get_rule_store),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """
    Merge the given keys over the current rules and save them.
    The whole rule set is validated first; an invalid edit writes nothing.
    """
    rules = await store.save(db, rules_in.values)
    return SuccessResponse(data=RuleSettings(values=rules.to_settings()), message="Rules updated")
