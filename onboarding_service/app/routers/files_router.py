from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from shared.core.database import get_db
from shared.helpers.json_response_helper import error_response
from shared.utils.app_status_code import AppStatusCode
from ..services.artifact_services import ArtifactStore

router = APIRouter(prefix="/api/files", tags=["Artifacts"])


@router.get("/{attachment_id}")
def download_file(attachment_id: str, db: Session = Depends(get_db)):
    attachment = ArtifactStore.get_by_id(db, attachment_id)
    if not attachment:
        return error_response(
            message="File not found",
            status_code=AppStatusCode.ARTIFACT_NOT_FOUND,
            http_status=status.HTTP_404_NOT_FOUND
        )
    return Response(
        content=attachment.file_data,
        media_type=attachment.file_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{attachment.file_name}"'},
    )
