import uuid
from sqlalchemy import Column, String, Boolean, DateTime, LargeBinary
from shared.core.database import Base
from shared.utils.clock import utcnow


class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    module_name = Column(String(64), nullable=False, index=True)
    entity_id = Column(String(64), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(100))
    file_data = Column(LargeBinary, nullable=False)
    is_deleted = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
