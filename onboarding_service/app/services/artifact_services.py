import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.core.config import settings
from ..models.attachments import Attachment

logger = logging.getLogger(__name__)

DOCUMENT_MODULE = "verification_document"
ROSTER_MODULES = {
    "members": "roster_members",
    "students": "roster_students",
    "teachers": "roster_teachers",
}


class ArtifactStoreError(RuntimeError):
    """Raised when artifact bytes could not be stored or read."""


class ArtifactStore:
    """
    Object storage for uploaded files, kept in the ``attachments`` table.

    One live artifact per (module, entity): storing a new file soft-deletes the
    previous one.
    """

    @staticmethod
    def url_for(attachment: Attachment) -> str:
        return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/api/files/{attachment.id}"

    @staticmethod
    def put(
        db: Session,
        module: str,
        entity_id: str,
        file_name: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        try:
            db.query(Attachment).filter(
                Attachment.module_name == module,
                Attachment.entity_id == entity_id,
                Attachment.is_deleted == False,
            ).update({Attachment.is_deleted: True}, synchronize_session=False)

            attachment = Attachment(
                module_name=module,
                entity_id=entity_id,
                file_name=(file_name or module)[:255],
                file_type=content_type or "application/octet-stream",
                file_data=data,
            )
            db.add(attachment)
            db.flush()
        except SQLAlchemyError as exc:
            logger.error("Storing %s artifact for %s failed: %s", module, entity_id, exc)
            raise ArtifactStoreError(f"Could not store {module} artifact") from exc

        return ArtifactStore.url_for(attachment)

    @staticmethod
    def get_current(db: Session, module: str, entity_id: str) -> Optional[Attachment]:
        return (
            db.query(Attachment)
            .filter(
                Attachment.module_name == module,
                Attachment.entity_id == entity_id,
                Attachment.is_deleted.is_(False),
            )
            .order_by(Attachment.created_at.desc())
            .first()
        )

    @staticmethod
    def get_by_id(db: Session, attachment_id: str) -> Optional[Attachment]:
        return (
            db.query(Attachment)
            .filter(Attachment.id == attachment_id, Attachment.is_deleted.is_(False))
            .first()
        )
