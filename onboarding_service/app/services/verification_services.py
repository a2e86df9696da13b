import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import BackgroundTasks, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.helpers import code_generator
from shared.helpers.json_response_helper import error_response
from shared.utils.app_status_code import AppStatusCode
from shared.utils.clock import utcnow
from shared.utils.enums import ArtifactStatus, VerificationEvent, VerificationStatus
from ..models.organizations import Organization
from ..schemas import onboarding_schemas as schemas
from .artifact_services import DOCUMENT_MODULE, ArtifactStore, ArtifactStoreError
from .notification_services import OTPNotifier
from .state_machine import expected_status, next_status

logger = logging.getLogger(__name__)


# -------- Lookups --------

def get_organization(db: Session, org_id: str) -> Organization:
    org = db.query(Organization).filter(Organization.org_id == org_id).first()
    if not org:
        return error_response(
            message="Organization not found",
            status_code=AppStatusCode.ORGANIZATION_NOT_FOUND,
            http_status=status.HTTP_404_NOT_FOUND
        )
    return org


def get_organization_snapshot(db: Session, org_id: str) -> schemas.OrganizationSnapshot:
    return schemas.OrganizationSnapshot.model_validate(get_organization(db, org_id))


def verify_organization_code(db: Session, org_code: str) -> schemas.OrgCodeLookupResponse:
    code = (org_code or "").strip()
    org = None
    if code:
        org = db.query(Organization).filter(Organization.org_code == code).first()
    if not org:
        return error_response(
            message="Invalid organization code",
            status_code=AppStatusCode.ORGANIZATION_NOT_FOUND,
            http_status=status.HTTP_404_NOT_FOUND
        )
    return schemas.OrgCodeLookupResponse.model_validate(org)


# -------- Helpers --------

def _advance(org: Organization, event: VerificationEvent) -> VerificationStatus:
    """Resolve the status ``event`` leads to, rejecting out-of-order steps."""
    target = next_status(org.status, event)
    if target is None:
        return error_response(
            message=(
                f"Cannot apply '{event.value}' while organization is "
                f"'{org.verification_status}'; expected '{expected_status(event).value}'"
            ),
            status_code=AppStatusCode.VERIFICATION_OUT_OF_ORDER,
            http_status=status.HTTP_409_CONFLICT
        )
    return target


def _new_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)


def _check_otp(stored_code: Optional[str], expires_at: Optional[datetime], supplied: str):
    if not stored_code or not expires_at:
        return error_response(
            message="No active verification code, please request a new one",
            status_code=AppStatusCode.OTP_INVALID,
            http_status=status.HTTP_400_BAD_REQUEST
        )
    if utcnow() > expires_at:
        return error_response(
            message="Verification code has expired",
            status_code=AppStatusCode.OTP_EXPIRED,
            http_status=status.HTTP_400_BAD_REQUEST
        )
    # bytes, since compare_digest rejects non-ASCII str
    if not secrets.compare_digest(stored_code.encode(), supplied.strip().encode()):
        return error_response(
            message="Invalid verification code",
            status_code=AppStatusCode.OTP_INVALID,
            http_status=status.HTTP_400_BAD_REQUEST
        )


def _issue_email_otp(org: Organization) -> str:
    org.email_otp_code = code_generator.new_one_time_code()
    org.email_otp_expires_at = _new_expiry()
    return org.email_otp_code


def _issue_phone_otp(org: Organization) -> str:
    org.phone_otp_code = code_generator.new_one_time_code()
    org.phone_otp_expires_at = _new_expiry()
    return org.phone_otp_code


def _schedule_email_otp(background_tasks: BackgroundTasks, notifier: OTPNotifier, org: Organization):
    background_tasks.add_task(
        notifier.send_email_otp,
        org.admin_email, org.admin_name, org.org_name, org.email_otp_code)


def _schedule_phone_otp(background_tasks: BackgroundTasks, notifier: OTPNotifier, org: Organization):
    background_tasks.add_task(
        notifier.send_sms_otp,
        org.admin_phone, org.org_name, org.phone_otp_code)


def _generate_identifiers(db: Session, org_name: str):
    for _ in range(settings.CODE_GENERATION_ATTEMPTS):
        org_code = code_generator.new_organization_code(org_name)
        admin_id = code_generator.new_admin_id(org_code)
        taken = db.query(Organization.org_id).filter(
            or_(Organization.org_code == org_code, Organization.admin_id == admin_id)
        ).first()
        if not taken:
            return code_generator.new_organization_id(), org_code, admin_id
        logger.warning("Organization code %s already taken, re-rolling", org_code)

    return error_response(
        message="Could not allocate a unique organization code, please retry",
        status_code=AppStatusCode.ORGANIZATION_CODE_CONFLICT,
        http_status=status.HTTP_409_CONFLICT
    )


# -------- Registration flow --------

def register_organization(
        db: Session,
        background_tasks: BackgroundTasks,
        notifier: OTPNotifier,
        request: schemas.RegisterRequest) -> schemas.RegisterResponse:
    admin_email = str(request.admin_email).lower()

    existing = db.query(Organization).filter(
        or_(
            func.lower(Organization.admin_email) == admin_email,
            Organization.email_domain == request.email_domain,
        )
    ).first()
    if existing:
        return error_response(
            message="Organization with this email or domain already exists",
            status_code=AppStatusCode.ORGANIZATION_ALREADY_EXISTS,
            http_status=status.HTTP_409_CONFLICT
        )

    org_id, org_code, admin_id = _generate_identifiers(db, request.org_name)

    org = Organization(
        org_id=org_id,
        org_code=org_code,
        admin_id=admin_id,
        admin_email=admin_email,
        org_name=request.org_name,
        org_type=request.org_type.value,
        email_domain=request.email_domain,
        admin_name=request.admin_name,
        admin_phone=request.admin_phone,
        verification_status=VerificationStatus.PENDING.value,
    )
    org.set_password(request.password)
    _issue_email_otp(org)

    db.add(org)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Registration for %s lost a uniqueness race", admin_email)
        return error_response(
            message="Organization with this email or domain already exists",
            status_code=AppStatusCode.ORGANIZATION_ALREADY_EXISTS,
            http_status=status.HTTP_409_CONFLICT
        )
    db.refresh(org)

    logger.info("Organization %s registered as %s", org.org_name, org.org_code)
    _schedule_email_otp(background_tasks, notifier, org)

    return schemas.RegisterResponse.model_validate(org)


def verify_email_otp(
        db: Session,
        background_tasks: BackgroundTasks,
        notifier: OTPNotifier,
        request: schemas.OTPVerifyRequest) -> schemas.EmailVerifiedResponse:
    org = get_organization(db, request.org_id)
    target = _advance(org, VerificationEvent.EMAIL_VERIFIED)
    _check_otp(org.email_otp_code, org.email_otp_expires_at, request.code)

    org.verification_status = target.value
    org.email_otp_code = None
    org.email_otp_expires_at = None
    _issue_phone_otp(org)
    db.commit()
    db.refresh(org)

    logger.info("Organization %s email verified", org.org_code)
    _schedule_phone_otp(background_tasks, notifier, org)

    return schemas.EmailVerifiedResponse.model_validate(org)


def resend_email_otp(
        db: Session,
        background_tasks: BackgroundTasks,
        notifier: OTPNotifier,
        org_id: str) -> schemas.OTPResendResponse:
    org = get_organization(db, org_id)
    _issue_email_otp(org)
    db.commit()
    db.refresh(org)

    _schedule_email_otp(background_tasks, notifier, org)
    return schemas.OTPResendResponse(
        org_id=org.org_id, channel="email", expires_at=org.email_otp_expires_at)


def verify_phone_otp(
        db: Session,
        request: schemas.OTPVerifyRequest) -> schemas.OrganizationSummary:
    org = get_organization(db, request.org_id)
    target = _advance(org, VerificationEvent.PHONE_VERIFIED)
    _check_otp(org.phone_otp_code, org.phone_otp_expires_at, request.code)

    org.verification_status = target.value
    org.phone_otp_code = None
    org.phone_otp_expires_at = None
    db.commit()
    db.refresh(org)

    logger.info("Organization %s phone verified", org.org_code)
    return schemas.OrganizationSummary.model_validate(org)


def resend_phone_otp(
        db: Session,
        background_tasks: BackgroundTasks,
        notifier: OTPNotifier,
        org_id: str) -> schemas.OTPResendResponse:
    org = get_organization(db, org_id)
    _issue_phone_otp(org)
    db.commit()
    db.refresh(org)

    _schedule_phone_otp(background_tasks, notifier, org)
    return schemas.OTPResendResponse(
        org_id=org.org_id, channel="sms", expires_at=org.phone_otp_expires_at)


def upload_document(
        db: Session,
        org_id: str,
        document_type: str,
        file_name: str,
        content_type: Optional[str],
        data: bytes) -> schemas.DocumentUploadResponse:
    org = get_organization(db, org_id)
    target = _advance(org, VerificationEvent.DOCUMENT_UPLOADED)
    if not data:
        return error_response(
            message="Document file is empty",
            status_code=AppStatusCode.REQUIRED_VALIDATION_ERROR,
            http_status=status.HTTP_400_BAD_REQUEST
        )

    # record intent before touching the artifact store
    org.document_type = document_type
    org.document_status = ArtifactStatus.PENDING.value
    db.commit()

    try:
        document_url = ArtifactStore.put(
            db, DOCUMENT_MODULE, org.org_id, file_name, data, content_type)
    except ArtifactStoreError as exc:
        db.rollback()
        org.document_status = ArtifactStatus.FAILED.value
        db.commit()
        return error_response(
            message=f"Document upload failed: {exc}",
            status_code=AppStatusCode.ARTIFACT_UPLOAD_FAILED,
            http_status=status.HTTP_502_BAD_GATEWAY
        )

    org.document_url = document_url
    org.document_status = ArtifactStatus.UPLOADED.value
    org.verification_status = target.value
    db.commit()
    db.refresh(org)

    logger.info("Organization %s fully verified with %s document", org.org_code, document_type)
    return schemas.DocumentUploadResponse.model_validate(org)


def skip_document(db: Session, org_id: str) -> schemas.OrganizationSummary:
    org = get_organization(db, org_id)
    target = _advance(org, VerificationEvent.DOCUMENT_SKIPPED)

    org.document_status = ArtifactStatus.SKIPPED.value
    org.verification_status = target.value
    db.commit()
    db.refresh(org)

    logger.info("Organization %s fully verified without document", org.org_code)
    return schemas.OrganizationSummary.model_validate(org)


# -------- Login --------

def admin_login(db: Session, request: schemas.LoginRequest) -> schemas.OrganizationSnapshot:
    query = db.query(Organization)
    if request.email:
        org = query.filter(
            func.lower(Organization.admin_email) == str(request.email).lower()).first()
    else:
        org = query.filter(Organization.admin_id == request.admin_id).first()

    if not org:
        return error_response(
            message="Admin account not found",
            status_code=AppStatusCode.AUTHENTICATION_USER_INVALID,
            http_status=status.HTTP_404_NOT_FOUND
        )

    if org.status is not VerificationStatus.FULLY_VERIFIED:
        return error_response(
            message="Organization verification is not complete",
            status_code=AppStatusCode.AUTHENTICATION_USER_NOT_VERIFIED,
            http_status=status.HTTP_403_FORBIDDEN
        )

    if not org.verify_password(request.password):
        return error_response(
            message="Invalid credentials",
            status_code=AppStatusCode.AUTHENTICATION_CREDENTIALS_INVALID,
            http_status=status.HTTP_401_UNAUTHORIZED
        )

    logger.info("Admin %s logged in", org.admin_id)
    return schemas.OrganizationSnapshot.model_validate(org)
