from datetime import timedelta

import pytest
from fastapi import BackgroundTasks, HTTPException

from shared.utils.app_status_code import AppStatusCode
from shared.utils.clock import utcnow
from shared.utils.enums import ArtifactStatus, OrgType, VerificationStatus
from onboarding_service.app.models.organizations import Organization
from onboarding_service.app.schemas.onboarding_schemas import (
    LoginRequest,
    OTPVerifyRequest,
    RegisterRequest,
)
from onboarding_service.app.services import verification_services as services
from onboarding_service.app.services.artifact_services import ArtifactStore, ArtifactStoreError


def make_request(**overrides):
    data = dict(
        org_name="Acme University",
        org_type=OrgType.EDUCATION,
        email_domain="acme.edu",
        admin_email="admin@acme.edu",
        admin_name="Ada Admin",
        admin_phone="+15550001111",
        password="s3cret-pass",
    )
    data.update(overrides)
    return RegisterRequest(**data)


def error_code(exc_info):
    return exc_info.value.detail["status_code"]


@pytest.fixture
def registered(db_session, notifier):
    tasks = BackgroundTasks()
    result = services.register_organization(db_session, tasks, notifier, make_request())
    return db_session.get(Organization, result.org_id)


def move_to(db, org, status):
    org.verification_status = status.value
    db.commit()
    return org


def test_register_creates_pending_org_with_email_otp(db_session, notifier):
    tasks = BackgroundTasks()

    result = services.register_organization(db_session, tasks, notifier, make_request())

    org = db_session.get(Organization, result.org_id)
    assert org.status is VerificationStatus.PENDING
    assert result.org_code.startswith("ACM-")
    assert result.admin_id == f"ADM-{result.org_code}"
    assert len(org.email_otp_code) == 6
    remaining = org.email_otp_expires_at - utcnow()
    assert timedelta(minutes=9) < remaining <= timedelta(minutes=10)
    assert len(tasks.tasks) == 1


def test_register_stores_hashed_password(registered):
    assert registered.admin_password_hash != "s3cret-pass"
    assert registered.verify_password("s3cret-pass")
    assert not registered.verify_password("wrong")


def test_register_rejects_duplicate_email_or_domain(db_session, notifier, registered):
    with pytest.raises(HTTPException) as exc_info:
        services.register_organization(
            db_session, BackgroundTasks(), notifier,
            make_request(email_domain="other.edu", admin_email="ADMIN@acme.edu"))
    assert exc_info.value.status_code == 409
    assert error_code(exc_info) == AppStatusCode.ORGANIZATION_ALREADY_EXISTS

    with pytest.raises(HTTPException) as exc_info:
        services.register_organization(
            db_session, BackgroundTasks(), notifier,
            make_request(admin_email="someone@else.edu"))
    assert exc_info.value.status_code == 409


def test_register_rerolls_taken_org_code(db_session, notifier, registered, monkeypatch):
    codes = iter([registered.org_code, "ACM-00000"])
    monkeypatch.setattr(services.code_generator, "new_organization_code", lambda name: next(codes))

    result = services.register_organization(
        db_session, BackgroundTasks(), notifier,
        make_request(email_domain="acme2.edu", admin_email="admin@acme2.edu"))

    assert result.org_code == "ACM-00000"


def test_register_gives_up_after_repeated_code_collisions(db_session, notifier, registered, monkeypatch):
    monkeypatch.setattr(
        services.code_generator, "new_organization_code", lambda name: registered.org_code)

    with pytest.raises(HTTPException) as exc_info:
        services.register_organization(
            db_session, BackgroundTasks(), notifier,
            make_request(email_domain="acme2.edu", admin_email="admin@acme2.edu"))
    assert error_code(exc_info) == AppStatusCode.ORGANIZATION_CODE_CONFLICT


def test_verify_email_success_issues_phone_otp(db_session, notifier, registered):
    tasks = BackgroundTasks()

    result = services.verify_email_otp(
        db_session, tasks, notifier,
        OTPVerifyRequest(org_id=registered.org_id, code=registered.email_otp_code))

    db_session.refresh(registered)
    assert registered.status is VerificationStatus.EMAIL_VERIFIED
    assert result.admin_phone == "+15550001111"
    assert registered.phone_otp_code and registered.phone_otp_expires_at
    assert registered.email_otp_code is None
    assert len(tasks.tasks) == 1


def test_verify_email_checks_expiry_before_code(db_session, notifier, registered):
    original_code = registered.email_otp_code
    registered.email_otp_expires_at = utcnow() - timedelta(seconds=1)
    db_session.commit()

    for code in (original_code, "000000"):
        with pytest.raises(HTTPException) as exc_info:
            services.verify_email_otp(
                db_session, BackgroundTasks(), notifier,
                OTPVerifyRequest(org_id=registered.org_id, code=code))
        assert error_code(exc_info) == AppStatusCode.OTP_EXPIRED

    db_session.refresh(registered)
    assert registered.status is VerificationStatus.PENDING
    assert registered.email_otp_code == original_code


def test_verify_email_with_wrong_code_leaves_state_untouched(db_session, notifier, registered):
    wrong = "111111" if registered.email_otp_code != "111111" else "222222"

    with pytest.raises(HTTPException) as exc_info:
        services.verify_email_otp(
            db_session, BackgroundTasks(), notifier,
            OTPVerifyRequest(org_id=registered.org_id, code=wrong))

    assert exc_info.value.status_code == 400
    assert error_code(exc_info) == AppStatusCode.OTP_INVALID
    db_session.refresh(registered)
    assert registered.status is VerificationStatus.PENDING
    assert registered.phone_otp_code is None


def test_verify_email_unknown_org_is_not_found(db_session, notifier):
    with pytest.raises(HTTPException) as exc_info:
        services.verify_email_otp(
            db_session, BackgroundTasks(), notifier,
            OTPVerifyRequest(org_id="ORG_missing", code="123456"))
    assert exc_info.value.status_code == 404


def test_resend_email_otp_replaces_code_and_expiry(db_session, notifier, registered, monkeypatch):
    registered.email_otp_code = "111111"
    registered.email_otp_expires_at = utcnow() - timedelta(minutes=5)
    db_session.commit()
    monkeypatch.setattr(services.code_generator, "new_one_time_code", lambda: "222222")
    tasks = BackgroundTasks()

    result = services.resend_email_otp(db_session, tasks, notifier, registered.org_id)

    db_session.refresh(registered)
    assert result.channel == "email"
    assert registered.email_otp_code == "222222"
    assert registered.email_otp_expires_at > utcnow()
    assert len(tasks.tasks) == 1

    with pytest.raises(HTTPException) as exc_info:
        services.verify_email_otp(
            db_session, BackgroundTasks(), notifier,
            OTPVerifyRequest(org_id=registered.org_id, code="111111"))
    assert error_code(exc_info) == AppStatusCode.OTP_INVALID

    services.verify_email_otp(
        db_session, BackgroundTasks(), notifier,
        OTPVerifyRequest(org_id=registered.org_id, code="222222"))
    db_session.refresh(registered)
    assert registered.status is VerificationStatus.EMAIL_VERIFIED


def test_verify_phone_requires_email_verified_first(db_session, registered):
    registered.phone_otp_code = "123456"
    registered.phone_otp_expires_at = utcnow() + timedelta(minutes=5)
    db_session.commit()

    with pytest.raises(HTTPException) as exc_info:
        services.verify_phone_otp(
            db_session, OTPVerifyRequest(org_id=registered.org_id, code="123456"))

    assert exc_info.value.status_code == 409
    assert error_code(exc_info) == AppStatusCode.VERIFICATION_OUT_OF_ORDER
    db_session.refresh(registered)
    assert registered.status is VerificationStatus.PENDING


def test_verify_phone_success(db_session, registered):
    move_to(db_session, registered, VerificationStatus.EMAIL_VERIFIED)
    registered.phone_otp_code = "654321"
    registered.phone_otp_expires_at = utcnow() + timedelta(minutes=5)
    db_session.commit()

    result = services.verify_phone_otp(
        db_session, OTPVerifyRequest(org_id=registered.org_id, code="654321"))

    db_session.refresh(registered)
    assert registered.status is VerificationStatus.PHONE_VERIFIED
    assert result.org_code == registered.org_code


def test_resend_phone_otp_is_unconditional(db_session, notifier, registered):
    tasks = BackgroundTasks()

    result = services.resend_phone_otp(db_session, tasks, notifier, registered.org_id)

    db_session.refresh(registered)
    assert result.channel == "sms"
    assert len(registered.phone_otp_code) == 6
    assert registered.status is VerificationStatus.PENDING


def test_skip_document_requires_phone_verified(db_session, registered):
    with pytest.raises(HTTPException) as exc_info:
        services.skip_document(db_session, registered.org_id)
    assert exc_info.value.status_code == 409

    move_to(db_session, registered, VerificationStatus.PHONE_VERIFIED)
    services.skip_document(db_session, registered.org_id)

    db_session.refresh(registered)
    assert registered.status is VerificationStatus.FULLY_VERIFIED
    assert registered.document_status == ArtifactStatus.SKIPPED.value


def test_upload_document_stores_artifact(db_session, registered):
    move_to(db_session, registered, VerificationStatus.PHONE_VERIFIED)

    result = services.upload_document(
        db_session, registered.org_id, "registration_certificate",
        "cert.pdf", "application/pdf", b"%PDF-1.4 fake")

    db_session.refresh(registered)
    assert registered.status is VerificationStatus.FULLY_VERIFIED
    assert registered.document_status == ArtifactStatus.UPLOADED.value
    assert result.document_url == registered.document_url
    assert "/api/files/" in result.document_url


def test_upload_document_failure_marks_artifact_failed(db_session, registered, monkeypatch):
    move_to(db_session, registered, VerificationStatus.PHONE_VERIFIED)

    def broken_put(*args, **kwargs):
        raise ArtifactStoreError("bucket unreachable")

    monkeypatch.setattr(ArtifactStore, "put", staticmethod(broken_put))

    with pytest.raises(HTTPException) as exc_info:
        services.upload_document(
            db_session, registered.org_id, "certificate", "cert.pdf", "application/pdf", b"data")

    assert exc_info.value.status_code == 502
    db_session.refresh(registered)
    assert registered.document_status == ArtifactStatus.FAILED.value
    assert registered.status is VerificationStatus.PHONE_VERIFIED
    assert registered.document_url is None


def test_login_order_of_checks(db_session, registered):
    with pytest.raises(HTTPException) as exc_info:
        services.admin_login(db_session, LoginRequest(email="nobody@acme.edu", password="x"))
    assert exc_info.value.status_code == 404

    with pytest.raises(HTTPException) as exc_info:
        services.admin_login(db_session, LoginRequest(email="admin@acme.edu", password="s3cret-pass"))
    assert exc_info.value.status_code == 403

    move_to(db_session, registered, VerificationStatus.FULLY_VERIFIED)
    with pytest.raises(HTTPException) as exc_info:
        services.admin_login(db_session, LoginRequest(admin_id=registered.admin_id, password="nope"))
    assert exc_info.value.status_code == 401

    snapshot = services.admin_login(
        db_session, LoginRequest(admin_id=registered.admin_id, password="s3cret-pass"))
    assert snapshot.verification_status is VerificationStatus.FULLY_VERIFIED
    assert snapshot.total_members == 0


def test_verify_organization_code_trims_and_is_case_sensitive(db_session, registered):
    result = services.verify_organization_code(db_session, f"  {registered.org_code} ")
    assert result.org_id == registered.org_id
    assert result.org_type == "Education"

    with pytest.raises(HTTPException) as exc_info:
        services.verify_organization_code(db_session, registered.org_code.lower())
    assert exc_info.value.status_code == 404
