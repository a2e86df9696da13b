import os

# must be set before shared.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SMTP_HOST", "")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "")

import pytest
from fastapi.testclient import TestClient

from shared.core.database import Base, SessionLocal, engine
from onboarding_service.app.main import app
from onboarding_service.app.services.notification_services import OTPNotifier, get_notifier


class RecordingNotifier(OTPNotifier):
    """Captures codes instead of delivering them."""

    def __init__(self, fail: bool = False):
        super().__init__()
        self.fail = fail
        self.emails = []
        self.sms = []

    def send_email_otp(self, email, admin_name, org_name, code):
        self.emails.append({"email": email, "org_name": org_name, "code": code})
        return not self.fail

    def send_sms_otp(self, phone, org_name, code):
        self.sms.append({"phone": phone, "org_name": org_name, "code": code})
        return not self.fail


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(notifier):
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def registration_payload():
    return {
        "orgName": "Acme University",
        "orgType": "Education",
        "emailDomain": "acme.edu",
        "adminEmail": "admin@acme.edu",
        "adminName": "Ada Admin",
        "adminPhone": "+15550001111",
        "password": "s3cret-pass",
    }


@pytest.fixture
def onboard(client, notifier, registration_payload):
    """Drive an organization to a given verification stage through the API."""

    def _onboard(stage="fully_verified", payload=None):
        body = payload or registration_payload
        response = client.post("/api/onboarding/register", json=body)
        assert response.status_code == 201, response.text
        org = response.json()["data"]
        if stage == "pending":
            return org

        response = client.post("/api/onboarding/verify-email", json={
            "orgId": org["orgId"], "code": notifier.emails[-1]["code"]})
        assert response.status_code == 200, response.text
        if stage == "email_verified":
            return org

        response = client.post("/api/onboarding/verify-phone", json={
            "orgId": org["orgId"], "code": notifier.sms[-1]["code"]})
        assert response.status_code == 200, response.text
        if stage == "phone_verified":
            return org

        response = client.post("/api/onboarding/skip-document", json={"orgId": org["orgId"]})
        assert response.status_code == 200, response.text
        return org

    return _onboard
