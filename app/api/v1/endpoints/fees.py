from typing import Any

from fastapi import APIRouter, Depends

from app.api import deps
from app.config import settings
from app.core.rules import RuleConfig
from app.models.user import User
from app.schemas.fees import FeeBreakdownResponse, FeeComputeRequest
from app.schemas.responses import SuccessResponse
from app.services.fee_calculator import FeeCalculator, FeeInput

router = APIRouter()


@router.post("/compute", response_model=SuccessResponse[FeeBreakdownResponse])
async def compute_fee(
    fee_in: FeeComputeRequest,
    rules: RuleConfig = Depends(deps.get_rules),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """
    Price one assignment without saving anything.
    The response lists every pricing step in the order it was applied.
    """
    calculator = FeeCalculator(rules, settings.MULTIPLE_CLASS_THRESHOLD)
    breakdown = calculator.compute(FeeInput(**fee_in.model_dump()))
    message = "Net amount floored to zero" if breakdown.floored_to_zero else "Fee computed"
    return SuccessResponse(
        data=FeeBreakdownResponse.model_validate(breakdown),
        message=message,
    )
