import pytest

from shared.utils.enums import VerificationEvent, VerificationStatus
from onboarding_service.app.services.state_machine import expected_status, next_status


@pytest.mark.parametrize("current, event, expected", [
    (VerificationStatus.PENDING, VerificationEvent.EMAIL_VERIFIED, VerificationStatus.EMAIL_VERIFIED),
    (VerificationStatus.EMAIL_VERIFIED, VerificationEvent.PHONE_VERIFIED, VerificationStatus.PHONE_VERIFIED),
    (VerificationStatus.PHONE_VERIFIED, VerificationEvent.DOCUMENT_UPLOADED, VerificationStatus.FULLY_VERIFIED),
    (VerificationStatus.PHONE_VERIFIED, VerificationEvent.DOCUMENT_SKIPPED, VerificationStatus.FULLY_VERIFIED),
])
def test_allowed_transitions(current, event, expected):
    assert next_status(current, event) is expected


@pytest.mark.parametrize("current, event", [
    (VerificationStatus.PENDING, VerificationEvent.PHONE_VERIFIED),
    (VerificationStatus.PENDING, VerificationEvent.DOCUMENT_SKIPPED),
    (VerificationStatus.EMAIL_VERIFIED, VerificationEvent.EMAIL_VERIFIED),
    (VerificationStatus.EMAIL_VERIFIED, VerificationEvent.DOCUMENT_UPLOADED),
    (VerificationStatus.FULLY_VERIFIED, VerificationEvent.EMAIL_VERIFIED),
    (VerificationStatus.FULLY_VERIFIED, VerificationEvent.DOCUMENT_SKIPPED),
])
def test_out_of_order_transitions_are_rejected(current, event):
    assert next_status(current, event) is None


def test_expected_status_names_the_predecessor():
    assert expected_status(VerificationEvent.PHONE_VERIFIED) is VerificationStatus.EMAIL_VERIFIED
    assert expected_status(VerificationEvent.DOCUMENT_SKIPPED) is VerificationStatus.PHONE_VERIFIED
