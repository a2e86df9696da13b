from typing import Dict, Optional, Tuple

from shared.utils.enums import VerificationEvent, VerificationStatus

TRANSITIONS: Dict[Tuple[VerificationStatus, VerificationEvent], VerificationStatus] = {
    (VerificationStatus.PENDING, VerificationEvent.EMAIL_VERIFIED):
        VerificationStatus.EMAIL_VERIFIED,
    (VerificationStatus.EMAIL_VERIFIED, VerificationEvent.PHONE_VERIFIED):
        VerificationStatus.PHONE_VERIFIED,
    (VerificationStatus.PHONE_VERIFIED, VerificationEvent.DOCUMENT_UPLOADED):
        VerificationStatus.FULLY_VERIFIED,
    (VerificationStatus.PHONE_VERIFIED, VerificationEvent.DOCUMENT_SKIPPED):
        VerificationStatus.FULLY_VERIFIED,
}


def next_status(current: VerificationStatus, event: VerificationEvent) -> Optional[VerificationStatus]:
    """Status reached by applying ``event`` in ``current``; None if not allowed."""
    return TRANSITIONS.get((current, event))


def expected_status(event: VerificationEvent) -> VerificationStatus:
    """The single status from which ``event`` is accepted."""
    for (state, candidate), _ in TRANSITIONS.items():
        if candidate is event:
            return state
    raise KeyError(event)
