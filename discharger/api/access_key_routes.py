from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.api.summary_access import load_summary_for_doctor
from discharger.db.session import get_db_session
from discharger.db.models.patient_access_key import PatientAccessKey
from discharger.db.models.user_profile import UserProfile
from discharger.middleware.auth_middleware import get_current_user
from discharger.schemas.access_key_schema import (
    AccessKeyCreate,
    AccessKeyCreatedResponse,
    AccessKeyResponse,
    AccessKeysListResponse,
    QrCodeRequest,
    QrCodeResponse,
    ShareSmsRequest,
    ShareSmsResponse,
)
from discharger.services.access_key_service import (
    InvalidPhoneNumberError,
    build_access_url,
    get_access_key_service,
)
from discharger.services.sms_service import SmsDeliveryError, SmsService, build_share_message, get_sms_service
from discharger.utils.logger import get_logger

router = APIRouter(prefix="/patient-summaries", tags=["access-keys"])
logger = get_logger(__name__)


def _to_response(key: PatientAccessKey) -> AccessKeyResponse:
    return AccessKeyResponse(
        id=key.id,
        summary_id=key.summary_id,
        role=key.role,
        phone_number=key.phone_number,
        access_key=key.access_key,
        is_active=key.is_active,
        created_at=key.created_at,
        updated_at=key.updated_at,
    )


def _invalid_phone() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Invalid phone number",
    )


@router.get("/{summary_id}/access-keys", response_model=AccessKeysListResponse)
async def list_access_keys(
    summary_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> AccessKeysListResponse:
    await load_summary_for_doctor(session, summary_id, current_user)
    keys = await get_access_key_service().list_active(session, summary_id)
    return AccessKeysListResponse(access_keys=[_to_response(k) for k in keys])


@router.post("/{summary_id}/access-keys", response_model=AccessKeyCreatedResponse)
async def create_access_key(
    summary_id: str,
    data: AccessKeyCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> AccessKeyCreatedResponse:
    """Grant a phone number access, reusing its active key when there is one."""
    await load_summary_for_doctor(session, summary_id, current_user)
    try:
        key, was_existing = await get_access_key_service().create_or_reuse(
            session, summary_id, data.phone_number, data.role
        )
    except InvalidPhoneNumberError:
        raise _invalid_phone()

    return AccessKeyCreatedResponse(
        access_key=_to_response(key),
        access_url=build_access_url(summary_id, key.access_key),
        was_existing=was_existing,
    )


@router.delete("/{summary_id}/access-keys/{key_id}", response_model=AccessKeyResponse)
async def deactivate_access_key(
    summary_id: str,
    key_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> AccessKeyResponse:
    """Revoke a key. The row is kept with is_active false."""
    await load_summary_for_doctor(session, summary_id, current_user)
    key = await get_access_key_service().deactivate(session, summary_id, key_id)
    if not key:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Access key not found",
        )
    return _to_response(key)


@router.post("/{summary_id}/share-sms", response_model=ShareSmsResponse)
async def share_via_sms(
    summary_id: str,
    data: ShareSmsRequest,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
    sms_service: SmsService = Depends(get_sms_service),
) -> ShareSmsResponse:
    """Text the patient or caregiver a link to the summary."""
    await load_summary_for_doctor(session, summary_id, current_user)
    try:
        key, was_existing = await get_access_key_service().create_or_reuse(
            session, summary_id, data.phone_number, data.role
        )
    except InvalidPhoneNumberError:
        raise _invalid_phone()

    access_url = build_access_url(summary_id, key.access_key)
    try:
        message_sid = await sms_service.send(
            key.phone_number,
            build_share_message(data.patient_name, data.role, access_url),
        )
    except SmsDeliveryError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send SMS",
        )

    logger.info("summary.shared_sms", summary_id=summary_id, access_key_id=key.id, role=data.role)
    return ShareSmsResponse(
        success=True,
        message_sid=message_sid,
        access_url=access_url,
        was_existing=was_existing,
    )


@router.post("/{summary_id}/qr-code", response_model=QrCodeResponse)
async def create_qr_code_link(
    summary_id: str,
    data: QrCodeRequest,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> QrCodeResponse:
    """A fresh phone-less link for the client to render as a QR code."""
    await load_summary_for_doctor(session, summary_id, current_user)
    key = await get_access_key_service().create_link(session, summary_id, data.role)
    return QrCodeResponse(
        access_url=build_access_url(summary_id, key.access_key),
        access_key=key.access_key,
    )
