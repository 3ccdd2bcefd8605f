"""Scan router: photo upload and classification, history and disposal choices."""

import logging
from typing import List, Union

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ecoscan import oauth2
from ecoscan.core.config import settings
from ecoscan.core.database import get_db
from ecoscan.core.exceptions import ValidationException
from ecoscan.core.middleware.rate_limit import limiter
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.gateways.contracts import ClassificationGateway, Retry, Storage
from ecoscan.modules.gateways.dependencies import get_classification_gateway, get_storage
from ecoscan.modules.scans.schemas import DisposalRequest, RetryOut, ScanOut
from ecoscan.modules.scans.service import DEFAULT_HISTORY_LIMIT, ScanLifecycle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scans", tags=["Scans"])

MAX_IMAGE_BYTES = 10 * 1024 * 1024


def get_scan_service(db: Session = Depends(get_db)) -> ScanLifecycle:
    return ScanLifecycle(db)


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    response_model=Union[ScanOut, RetryOut],
)
@limiter.limit(settings.scan_rate_limit)
async def create_scan(
    request: Request,
    response: Response,
    file: UploadFile = File(...),
    actor: ActorContext = Depends(oauth2.get_actor),
    gateway: ClassificationGateway = Depends(get_classification_gateway),
    storage: Storage = Depends(get_storage),
    service: ScanLifecycle = Depends(get_scan_service),
):
    """Classify an item photo and record the scan.

    An unidentifiable photo yields ``{"retry": true}`` with status 200 and stores nothing.
    A failed image upload does not block the scan; it is recorded without an image.
    """
    image = await file.read()
    if not image:
        raise ValidationException("The uploaded image is empty", "file")
    if len(image) > MAX_IMAGE_BYTES:
        raise ValidationException("The uploaded image is too large", "file")

    outcome = await run_in_threadpool(gateway.classify, image, file.content_type)
    if isinstance(outcome, Retry):
        response.status_code = status.HTTP_200_OK
        return RetryOut(reason=outcome.reason)

    image_url = None
    try:
        image_url = await storage.put(
            image, filename=file.filename, content_type=file.content_type
        )
    except OSError as exc:
        logger.warning(f"Storing scan image failed, recording without it: {exc}")

    try:
        record = service.record_scan(actor, outcome, image_url=image_url)
    except Exception:
        if image_url:
            await storage.delete(image_url)
        raise
    return ScanOut.model_validate(record)


@router.get("/", response_model=List[ScanOut])
def list_scans(
    skip: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=100),
    actor: ActorContext = Depends(oauth2.get_actor),
    service: ScanLifecycle = Depends(get_scan_service),
):
    return service.list_scans(actor, skip=skip, limit=limit)


@router.get("/{scan_id}", response_model=ScanOut)
def read_scan(
    scan_id: int,
    actor: ActorContext = Depends(oauth2.get_actor),
    service: ScanLifecycle = Depends(get_scan_service),
):
    return service.get_scan(actor, scan_id)


@router.post("/{scan_id}/disposal", response_model=ScanOut)
def choose_disposal(
    scan_id: int,
    payload: DisposalRequest,
    actor: ActorContext = Depends(oauth2.get_actor),
    service: ScanLifecycle = Depends(get_scan_service),
):
    """Apply a disposal choice; discard approves at once, others wait for review."""
    return service.apply_disposal_choice(actor, scan_id, payload.choice)
