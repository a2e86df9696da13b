from passlib.context import CryptContext
from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from shared.core.database import Base
from shared.utils.clock import utcnow
from shared.utils.enums import VerificationStatus

bcrypt_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class Organization(Base):
    __tablename__ = "organizations"

    # Identity
    org_id = Column(String(64), primary_key=True)
    org_code = Column(String(32), unique=True, nullable=False, index=True)
    admin_id = Column(String(48), unique=True, nullable=False, index=True)
    admin_email = Column(String(255), unique=True, nullable=False, index=True)

    # Profile
    org_name = Column(String(200), nullable=False)
    org_type = Column(String(32), nullable=False)
    email_domain = Column(String(255), nullable=False, index=True)
    admin_name = Column(String(200), nullable=False)
    admin_phone = Column(String(32), nullable=False)
    admin_password_hash = Column(String(255), nullable=False)

    # Verification
    verification_status = Column(
        String(32), nullable=False, default=VerificationStatus.PENDING.value)
    email_otp_code = Column(String(6), nullable=True)
    email_otp_expires_at = Column(DateTime, nullable=True)
    phone_otp_code = Column(String(6), nullable=True)
    phone_otp_expires_at = Column(DateTime, nullable=True)

    # Document artifact
    document_url = Column(Text, nullable=True)
    document_type = Column(String(64), nullable=True)
    document_status = Column(String(16), nullable=True)

    # Hierarchical roster; counters are derived from the tree
    members_csv_url = Column(Text, nullable=True)
    roster_status = Column(String(16), nullable=True)
    csv_uploaded_at = Column(DateTime, nullable=True)
    hierarchy = Column(JSON, nullable=True)

    # Typed rosters
    students_csv_url = Column(Text, nullable=True)
    students_count = Column(Integer, nullable=False, default=0)
    teachers_csv_url = Column(Text, nullable=True)
    teachers_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def set_password(self, password: str):
        self.admin_password_hash = bcrypt_context.hash(password)

    def verify_password(self, password: str) -> bool:
        try:
            return bcrypt_context.verify(password, self.admin_password_hash)
        except ValueError:
            # malformed stored hash
            return False

    @property
    def status(self) -> VerificationStatus:
        return VerificationStatus(self.verification_status)

    @property
    def has_csv_uploaded(self) -> bool:
        # a failed re-upload keeps the last committed roster; roster_status reports the attempt
        return bool(self.members_csv_url and self.hierarchy is not None)

    def _hierarchy_total(self, key: str) -> int:
        return int((self.hierarchy or {}).get(key, 0))

    @property
    def total_members(self) -> int:
        return self._hierarchy_total("totalMembers")

    @property
    def total_students(self) -> int:
        return self._hierarchy_total("totalStudents")

    @property
    def total_faculty(self) -> int:
        return self._hierarchy_total("totalFaculty")

    @property
    def total_staff(self) -> int:
        return self._hierarchy_total("totalStaff")
