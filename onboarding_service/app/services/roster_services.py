import io
import logging
from typing import List, Optional

import pandas as pd
from fastapi import status
from sqlalchemy.orm import Session

from shared.helpers.json_response_helper import error_response
from shared.utils.app_status_code import AppStatusCode
from shared.utils.clock import utcnow
from shared.utils.enums import ArtifactStatus, RosterType, VerificationStatus
from ..models.organizations import Organization
from ..schemas import roster_schemas as schemas
from . import roster_hierarchy
from .artifact_services import ROSTER_MODULES, ArtifactStore, ArtifactStoreError
from .verification_services import get_organization

logger = logging.getLogger(__name__)


def _require_verified(org: Organization):
    if org.status is not VerificationStatus.FULLY_VERIFIED:
        return error_response(
            message="Roster upload is only available after verification is complete",
            status_code=AppStatusCode.AUTHENTICATION_USER_NOT_VERIFIED,
            http_status=status.HTTP_403_FORBIDDEN
        )


def _invalid_file(message: str):
    return error_response(
        message=message,
        status_code=AppStatusCode.INVALID_INPUT,
        http_status=status.HTTP_400_BAD_REQUEST
    )


def _store_failed(exc: Exception):
    return error_response(
        message=f"Roster upload failed: {exc}",
        status_code=AppStatusCode.ARTIFACT_UPLOAD_FAILED,
        http_status=status.HTTP_502_BAD_GATEWAY
    )


def upload_roster(
        db: Session,
        org_id: str,
        file_name: str,
        content_type: Optional[str],
        data: bytes) -> schemas.RosterUploadResponse:
    """Hierarchical ingestion: store the members file and rebuild the tree."""
    org = get_organization(db, org_id)
    _require_verified(org)

    try:
        tree, stats = roster_hierarchy.build_from_payload(data)
    except roster_hierarchy.RosterDecodeError as exc:
        return _invalid_file(str(exc))

    org.roster_status = ArtifactStatus.PENDING.value
    db.commit()

    try:
        csv_url = ArtifactStore.put(
            db, ROSTER_MODULES[RosterType.MEMBERS.value], org.org_id,
            file_name, data, content_type or "text/csv")
    except ArtifactStoreError as exc:
        db.rollback()
        org.roster_status = ArtifactStatus.FAILED.value
        db.commit()
        return _store_failed(exc)

    # the previous tree is discarded, never merged
    org.hierarchy = tree.model_dump(by_alias=True)
    org.members_csv_url = csv_url
    org.csv_uploaded_at = utcnow()
    org.roster_status = ArtifactStatus.UPLOADED.value
    db.commit()
    db.refresh(org)

    logger.info(
        "Roster for %s: %s members in %s departments (%s skipped)",
        org.org_code, stats.total_members, stats.department_count, stats.skipped_rows)

    return schemas.RosterUploadResponse(
        org_id=org.org_id, members_csv_url=csv_url, stats=stats)


def upload_typed_roster(
        db: Session,
        org_id: str,
        csv_type: RosterType,
        file_name: str,
        content_type: Optional[str],
        data: bytes) -> schemas.TypedRosterUploadResponse:
    """Flat ingestion of a students or teachers file: URL and row count only."""
    if csv_type not in (RosterType.STUDENTS, RosterType.TEACHERS):
        return _invalid_file("csvType must be 'students' or 'teachers'")

    org = get_organization(db, org_id)
    _require_verified(org)

    try:
        member_count = roster_hierarchy.count_rows(data)
    except roster_hierarchy.RosterDecodeError as exc:
        return _invalid_file(str(exc))

    try:
        csv_url = ArtifactStore.put(
            db, ROSTER_MODULES[csv_type.value], org.org_id,
            file_name, data, content_type or "text/csv")
    except ArtifactStoreError as exc:
        db.rollback()
        return _store_failed(exc)

    if csv_type is RosterType.STUDENTS:
        org.students_csv_url = csv_url
        org.students_count = member_count
    else:
        org.teachers_csv_url = csv_url
        org.teachers_count = member_count
    db.commit()
    db.refresh(org)

    logger.info("%s roster for %s: %s rows", csv_type.value.title(), org.org_code, member_count)

    return schemas.TypedRosterUploadResponse(
        csv_type=csv_type,
        member_count=member_count,
        csv_url=csv_url,
        total_students=org.students_count,
        total_teachers=org.teachers_count,
    )


def _read_members(data: bytes, csv_type: RosterType) -> List[dict]:
    read_options = dict(
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        encoding="utf-8-sig",
        on_bad_lines="skip",
        index_col=False,
    )
    if csv_type is RosterType.MEMBERS:
        read_options.update(header=0, names=list(roster_hierarchy.ROSTER_COLUMNS))

    try:
        frame = pd.read_csv(io.BytesIO(data), **read_options)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as exc:
        logger.warning("Stored %s roster could not be read: %s", csv_type.value, exc)
        return []

    frame = frame.fillna("")
    return [
        {key: str(value).strip() for key, value in record.items()}
        for record in frame.to_dict(orient="records")
    ]


def get_roster(
        db: Session,
        org_id: str,
        csv_type: RosterType = RosterType.MEMBERS) -> schemas.RosterMembersResponse:
    org = get_organization(db, org_id)
    attachment = ArtifactStore.get_current(db, ROSTER_MODULES[csv_type.value], org.org_id)
    if not attachment:
        return error_response(
            message=f"No {csv_type.value} roster uploaded for this organization",
            status_code=AppStatusCode.ARTIFACT_NOT_FOUND,
            http_status=status.HTTP_404_NOT_FOUND
        )

    return schemas.RosterMembersResponse(
        org_id=org.org_id,
        csv_type=csv_type,
        csv_url=ArtifactStore.url_for(attachment),
        members=_read_members(attachment.file_data, csv_type),
    )
