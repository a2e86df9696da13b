from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, field_validator, model_validator
from pydantic.alias_generators import to_camel

from shared.utils.enums import OrgType, VerificationStatus
from shared.wrappers.empty_string_model_wrapper import EmptyStringModel
from .roster_schemas import HierarchyTree


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class CamelRequest(EmptyStringModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


# -------- Requests --------

class RegisterRequest(CamelRequest):
    org_name: str
    org_type: OrgType
    email_domain: str
    admin_email: EmailStr
    admin_name: str
    admin_phone: str
    password: str

    @field_validator("email_domain")
    @classmethod
    def normalize_domain(cls, v: str) -> str:
        return v.lower().lstrip("@")

    @field_validator("admin_phone")
    @classmethod
    def clean_phone(cls, v: str) -> str:
        return "".join(v.split())


class OrgIdRequest(CamelRequest):
    org_id: str


class OTPVerifyRequest(OrgIdRequest):
    code: str


class LoginRequest(CamelRequest):
    email: Optional[EmailStr] = None
    admin_id: Optional[str] = None
    password: str

    @model_validator(mode="after")
    def validate_either_email_or_admin_id(self):
        if not self.email and not self.admin_id:
            raise ValueError("Either email or adminId is required")
        return self


# -------- Responses --------

class OrganizationSummary(CamelModel):
    org_code: str
    admin_id: str
    org_name: str


class RegisterResponse(OrganizationSummary):
    org_id: str


class EmailVerifiedResponse(OrganizationSummary):
    admin_phone: str


class DocumentUploadResponse(OrganizationSummary):
    document_url: str


class OTPResendResponse(CamelModel):
    org_id: str
    channel: str
    expires_at: datetime


class OrgCodeLookupResponse(CamelModel):
    org_id: str
    org_name: str
    org_code: str
    org_type: str


class OrganizationSnapshot(CamelModel):
    org_id: str
    org_code: str
    org_name: str
    org_type: str
    email_domain: str
    admin_id: str
    admin_email: str
    admin_name: str
    admin_phone: str
    verification_status: VerificationStatus
    document_url: Optional[str] = None
    document_type: Optional[str] = None
    document_status: Optional[str] = None
    members_csv_url: Optional[str] = None
    roster_status: Optional[str] = None
    csv_uploaded_at: Optional[datetime] = None
    has_csv_uploaded: bool = False
    hierarchy: Optional[HierarchyTree] = None
    total_members: int = 0
    total_students: int = 0
    total_faculty: int = 0
    total_staff: int = 0
    students_csv_url: Optional[str] = None
    teachers_csv_url: Optional[str] = None
    students_count: int = 0
    teachers_count: int = 0
    created_at: datetime
