"""
Payment Routes

Users upload a screenshot of their UPI payment, then submit the payment
details for manual review.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel

from hatch_api.api.dependencies import CurrentProfile, PaymentServiceDep
from hatch_api.domain.payments import PaymentResponse, PaymentSubmissionCreate
from hatch_api.infrastructure.storage.screenshot_storage import (
    ScreenshotStorage,
    get_screenshot_storage,
)


logger = logging.getLogger(__name__)

router = APIRouter()


class ScreenshotUploadResponse(BaseModel):
    screenshot_ref: str


@router.post(
    "/payments/screenshots",
    response_model=ScreenshotUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_payment_screenshot(
    profile: CurrentProfile,
    file: UploadFile = File(...),
    storage: ScreenshotStorage = Depends(get_screenshot_storage),
):
    """Store the screenshot and return the reference to submit with the payment."""
    storage.check_size(file.size)
    # One byte past the limit is enough for validate() to reject it
    content = await file.read(storage.max_bytes + 1)
    ref = await storage.upload(profile.id, content, file.content_type)
    return ScreenshotUploadResponse(screenshot_ref=ref)


@router.post("/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def submit_payment(
    data: PaymentSubmissionCreate,
    profile: CurrentProfile,
    service: PaymentServiceDep,
):
    """
    Submit a payment for review.

    Returns 400 for invalid fields and 409 when the transaction ID was
    already used.
    """
    submission = await service.submit(profile.id, data)
    return PaymentResponse.model_validate(submission)


@router.get("/payments/mine", response_model=List[PaymentResponse])
async def list_my_payments(profile: CurrentProfile, service: PaymentServiceDep):
    return await service.list_for_user(profile.id)
