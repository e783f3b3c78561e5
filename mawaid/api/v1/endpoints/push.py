"""Push delivery webhook called by the database on notification insert."""

from fastapi import APIRouter, Depends, status

from mawaid.dependencies import Push, verify_webhook_secret
from mawaid.schemas.notifications import PushDeliveryResult, PushWebhookRequest

router = APIRouter(prefix="/push", dependencies=[Depends(verify_webhook_secret)])


@router.post(
    "/send",
    response_model=PushDeliveryResult,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Deliver a notification to the recipient's device",
)
async def send_push(data: PushWebhookRequest, service: Push) -> PushDeliveryResult:
    """
    Deliver the inserted notification row.

    Returns ``{"skipped": true}`` when the recipient has no usable
    subscription and ``{"expired": true}`` when the subscription is gone (the
    stored token is cleared).
    """
    return await service.deliver(data.record)
