from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from shared.utils.enums import RosterType


class RosterModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


# -------- Hierarchy tree --------

class SectionNode(RosterModel):
    section: str
    total_members: int = 0


class SemesterNode(RosterModel):
    semester: int
    sections: List[SectionNode] = Field(default_factory=list)


class YearNode(RosterModel):
    year: int
    semesters: List[SemesterNode] = Field(default_factory=list)


class BranchNode(RosterModel):
    name: str
    total_members: int = 0
    years: List[YearNode] = Field(default_factory=list)


class DepartmentNode(RosterModel):
    name: str
    total_members: int = 0
    branches: List[BranchNode] = Field(default_factory=list)


class HierarchyTree(RosterModel):
    total_members: int = 0
    total_students: int = 0
    total_faculty: int = 0
    total_staff: int = 0
    departments: List[DepartmentNode] = Field(default_factory=list)


# -------- Roster rows / uploads --------

class RosterMember(RosterModel):
    unique_id: str
    name: Optional[str] = None
    role: str
    department: str
    branch: Optional[str] = None
    year: Optional[int] = None
    semester: Optional[int] = None
    section: Optional[str] = None


class HierarchyStats(RosterModel):
    total_members: int
    total_students: int
    total_faculty: int
    total_staff: int
    department_count: int
    skipped_rows: int = 0


class RosterUploadResponse(RosterModel):
    org_id: str
    members_csv_url: str
    stats: HierarchyStats


class TypedRosterUploadResponse(RosterModel):
    csv_type: RosterType
    member_count: int
    csv_url: str
    total_students: int
    total_teachers: int


class RosterMembersResponse(RosterModel):
    org_id: str
    csv_type: RosterType
    csv_url: Optional[str] = None
    members: List[dict] = Field(default_factory=list)
