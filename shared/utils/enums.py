from enum import Enum


class OrgType(str, Enum):
    EDUCATION = "Education"
    MINING = "Mining"
    HEALTHCARE = "Healthcare"
    CORPORATE = "Corporate"
    OTHER = "Other"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    EMAIL_VERIFIED = "email_verified"
    PHONE_VERIFIED = "phone_verified"
    FULLY_VERIFIED = "fully_verified"


class VerificationEvent(str, Enum):
    EMAIL_VERIFIED = "email_verified"
    PHONE_VERIFIED = "phone_verified"
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_SKIPPED = "document_skipped"


class ArtifactStatus(str, Enum):
    # intent recorded, bytes not yet in the artifact store
    PENDING = "pending"
    UPLOADED = "uploaded"
    FAILED = "failed"
    SKIPPED = "skipped"


class RosterType(str, Enum):
    MEMBERS = "members"
    STUDENTS = "students"
    TEACHERS = "teachers"


class MemberRole(str, Enum):
    STUDENT = "student"
    FACULTY = "faculty"
    STAFF = "staff"
