from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.rules import RuleConfig
from app.models.user import User
from app.schemas.payment import PaymentCreate, PaymentResponse, PaymentStatusUpdate, PaymentSummary
from app.schemas.responses import SuccessResponse
from app.services.payment_service import PaymentService

router = APIRouter()


@router.post("/assignments/{assignment_id}/payment", response_model=SuccessResponse[PaymentResponse])
async def create_payment(
    assignment_id: UUID,
    payment_in: PaymentCreate,
    db: AsyncSession = Depends(deps.get_db),
    rules: RuleConfig = Depends(deps.get_rules),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """Calculate the payment for a completed assignment"""
    payment = await PaymentService.generate_payment(
        db,
        rules,
        assignment_id,
        bonus=payment_in.bonus,
        deductions=payment_in.deductions,
        sessions=payment_in.sessions,
        notes=payment_in.notes,
    )
    message = (
        "Payment calculated; net amount floored to zero"
        if payment.floored_to_zero
        else "Payment calculated"
    )
    return SuccessResponse(data=PaymentResponse.model_validate(payment), message=message)


@router.get("/payments/summary", response_model=SuccessResponse[PaymentSummary])
async def payment_summary(
    month: str = Query(..., pattern=r"^\d{4}-\d{2}$", description="Accounting month, YYYY-MM"),
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    summary = await PaymentService.monthly_summary(db, month)
    return SuccessResponse(data=PaymentSummary(**summary))


@router.patch("/payments/{payment_id}/status", response_model=SuccessResponse[PaymentResponse])
async def update_payment_status(
    payment_id: UUID,
    status_in: PaymentStatusUpdate,
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """Move a payment along its lifecycle; PAID payments cannot change"""
    payment = await PaymentService.update_status(
        db, payment_id, status_in.status, actor_id=current_user.id, notes=status_in.notes
    )
    return SuccessResponse(
        data=PaymentResponse.model_validate(payment),
        message=f"Payment {payment.payment_number} is {payment.status.value}",
    )
