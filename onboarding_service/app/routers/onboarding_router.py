from typing import Optional, Union

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.database import get_db
from shared.core.schemas import JsonOutResult
from shared.helpers.json_response_helper import error_response, success_response
from shared.utils.app_status_code import AppStatusCode
from shared.utils.enums import RosterType
from ..schemas import onboarding_schemas as schemas
from ..schemas import roster_schemas
from ..services import roster_services, verification_services
from ..services.notification_services import OTPNotifier, get_notifier

router = APIRouter(prefix="/api/onboarding", tags=["Organization Onboarding"])


async def read_upload(file: UploadFile) -> bytes:
    data = await file.read()
    if len(data) > settings.MAX_UPLOAD_BYTES:
        return error_response(
            message=f"File exceeds {settings.MAX_UPLOAD_BYTES} bytes",
            status_code=AppStatusCode.INVALID_INPUT,
            http_status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        )
    return data


@router.post("/register", response_model=JsonOutResult[schemas.RegisterResponse], status_code=201)
def register(
        request: schemas.RegisterRequest,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        notifier: OTPNotifier = Depends(get_notifier)):
    result = verification_services.register_organization(
        db, background_tasks, notifier, request)
    return success_response(
        result, "Organization registered successfully", AppStatusCode.CREATED_SUCCESSFULLY)


@router.post("/verify-email", response_model=JsonOutResult[schemas.EmailVerifiedResponse])
def verify_email(
        request: schemas.OTPVerifyRequest,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        notifier: OTPNotifier = Depends(get_notifier)):
    result = verification_services.verify_email_otp(
        db, background_tasks, notifier, request)
    return success_response(
        result, "Email verified, phone code sent", AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/resend-email-otp", response_model=JsonOutResult[schemas.OTPResendResponse])
def resend_email_otp(
        request: schemas.OrgIdRequest,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        notifier: OTPNotifier = Depends(get_notifier)):
    result = verification_services.resend_email_otp(
        db, background_tasks, notifier, request.org_id)
    return success_response(result, "Email code resent", AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/verify-phone", response_model=JsonOutResult[schemas.OrganizationSummary])
def verify_phone(
        request: schemas.OTPVerifyRequest,
        db: Session = Depends(get_db)):
    result = verification_services.verify_phone_otp(db, request)
    return success_response(result, "Phone verified", AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/resend-phone-otp", response_model=JsonOutResult[schemas.OTPResendResponse])
def resend_phone_otp(
        request: schemas.OrgIdRequest,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        notifier: OTPNotifier = Depends(get_notifier)):
    result = verification_services.resend_phone_otp(
        db, background_tasks, notifier, request.org_id)
    return success_response(result, "Phone code resent", AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/upload-document", response_model=JsonOutResult[schemas.DocumentUploadResponse])
async def upload_document(
        orgId: str = Form(...),
        documentType: str = Form(...),
        file: UploadFile = File(...),
        db: Session = Depends(get_db)):
    data = await read_upload(file)
    result = verification_services.upload_document(
        db, orgId.strip(), documentType.strip(), file.filename, file.content_type, data)
    return success_response(result, "Document uploaded", AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/skip-document", response_model=JsonOutResult[schemas.OrganizationSummary])
def skip_document(
        request: schemas.OrgIdRequest,
        db: Session = Depends(get_db)):
    result = verification_services.skip_document(db, request.org_id)
    return success_response(result, "Document step skipped", AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post(
    "/upload-csv",
    response_model=JsonOutResult[Union[
        roster_schemas.RosterUploadResponse, roster_schemas.TypedRosterUploadResponse]])
async def upload_csv(
        orgId: str = Form(...),
        file: UploadFile = File(...),
        csvType: Optional[RosterType] = Form(None),
        db: Session = Depends(get_db)):
    data = await read_upload(file)
    if csvType is None or csvType is RosterType.MEMBERS:
        result = roster_services.upload_roster(
            db, orgId.strip(), file.filename, file.content_type, data)
    else:
        result = roster_services.upload_typed_roster(
            db, orgId.strip(), csvType, file.filename, file.content_type, data)
    return success_response(result, "Roster uploaded", AppStatusCode.CREATED_SUCCESSFULLY)


@router.post("/admin-login", response_model=JsonOutResult[schemas.OrganizationSnapshot])
def admin_login(
        request: schemas.LoginRequest,
        db: Session = Depends(get_db)):
    result = verification_services.admin_login(db, request)
    return success_response(result, "Login successful")


@router.get("/members/{org_id}", response_model=JsonOutResult[roster_schemas.RosterMembersResponse])
def get_members(
        org_id: str,
        csv_type: RosterType = RosterType.MEMBERS,
        db: Session = Depends(get_db)):
    return success_response(roster_services.get_roster(db, org_id, csv_type))


@router.get("/verify-org-code/{org_code}", response_model=JsonOutResult[schemas.OrgCodeLookupResponse])
def verify_org_code(org_code: str, db: Session = Depends(get_db)):
    return success_response(
        verification_services.verify_organization_code(db, org_code), "Organization code is valid")


@router.get("/organizations/{org_id}", response_model=JsonOutResult[schemas.OrganizationSnapshot])
def get_organization(org_id: str, db: Session = Depends(get_db)):
    return success_response(verification_services.get_organization_snapshot(db, org_id))
