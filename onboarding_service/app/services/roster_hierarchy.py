"""
Roster hierarchy builder.

Turns a flat delimited roster (header line first, then one member per line:
unique id, name, role, department, branch, year, semester, section) into a
department -> branch -> year -> semester -> section tree with member counts.

Only students descend below department level. Rows that cannot be placed are
skipped and counted, never fatal.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from shared.utils.enums import MemberRole
from ..schemas.roster_schemas import (
    BranchNode,
    DepartmentNode,
    HierarchyStats,
    HierarchyTree,
    RosterMember,
    SectionNode,
    SemesterNode,
    YearNode,
)

logger = logging.getLogger(__name__)

ROSTER_COLUMNS = ("uniqueId", "name", "role", "department",
                  "branch", "year", "semester", "section")
MIN_FIELDS = 4
MAX_FIELDS = len(ROSTER_COLUMNS)

FACULTY_ROLES = {"supervisor", "faculty", "teacher"}


class RosterDecodeError(ValueError):
    """Raised when the payload is empty or not text."""


def classify_role(role: str) -> MemberRole:
    value = role.strip().lower()
    if value == "student":
        return MemberRole.STUDENT
    if value in FACULTY_ROLES:
        return MemberRole.FACULTY
    return MemberRole.STAFF


def decode_roster(payload: bytes) -> str:
    if not payload or not payload.strip():
        raise RosterDecodeError("Roster file is empty")
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise RosterDecodeError("Roster file must be UTF-8 text") from exc


def iter_records(text: str) -> Iterator[List[str]]:
    """Yield stripped field lists for every non-blank line after the header."""
    reader = csv.reader(io.StringIO(text))
    next(reader, None)
    for row in reader:
        fields = [value.strip() for value in row]
        if not any(fields):
            continue
        yield fields


def _optional_int(value: str) -> Optional[int]:
    return int(value) if value else None


def parse_member(fields: List[str]) -> Optional[RosterMember]:
    """Return the member a row describes, or None when the row is unusable."""
    if not MIN_FIELDS <= len(fields) <= MAX_FIELDS:
        return None
    padded = fields + [""] * (MAX_FIELDS - len(fields))
    unique_id, name, role, department, branch, year, semester, section = padded
    if not unique_id or not role or not department:
        return None
    try:
        year_number = _optional_int(year)
        semester_number = _optional_int(semester)
    except ValueError:
        return None
    return RosterMember(
        unique_id=unique_id,
        name=name or None,
        role=role,
        department=department,
        branch=branch or None,
        year=year_number,
        semester=semester_number,
        section=section or None,
    )


def parse_members(text: str) -> Tuple[List[RosterMember], int]:
    members: List[RosterMember] = []
    skipped = 0
    for fields in iter_records(text):
        member = parse_member(fields)
        if member is None:
            skipped += 1
            continue
        members.append(member)
    return members, skipped


@dataclass
class _Index:
    """Sibling lookup tables so each upsert is a dict hit, not a list scan."""
    departments: Dict[str, DepartmentNode] = field(default_factory=dict)
    branches: Dict[Tuple[str, str], BranchNode] = field(default_factory=dict)
    years: Dict[Tuple[str, str, int], YearNode] = field(default_factory=dict)
    semesters: Dict[Tuple[str, str, int, int], SemesterNode] = field(default_factory=dict)
    sections: Dict[Tuple[str, str, int, int, str], SectionNode] = field(default_factory=dict)


class HierarchyBuilder:
    def __init__(self):
        self.tree = HierarchyTree()
        self._index = _Index()

    def add(self, member: RosterMember) -> None:
        tree = self.tree
        role = classify_role(member.role)

        tree.total_members += 1
        if role is MemberRole.STUDENT:
            tree.total_students += 1
        elif role is MemberRole.FACULTY:
            tree.total_faculty += 1
        else:
            tree.total_staff += 1

        department = self._upsert(
            self._index.departments, member.department,
            tree.departments, lambda: DepartmentNode(name=member.department))
        department.total_members += 1

        if role is not MemberRole.STUDENT or not member.branch:
            return

        key = (member.department, member.branch)
        branch = self._upsert(
            self._index.branches, key,
            department.branches, lambda: BranchNode(name=member.branch))
        branch.total_members += 1

        if member.year is None:
            return
        key = key + (member.year,)
        year = self._upsert(
            self._index.years, key,
            branch.years, lambda: YearNode(year=member.year))

        if member.semester is None:
            return
        key = key + (member.semester,)
        semester = self._upsert(
            self._index.semesters, key,
            year.semesters, lambda: SemesterNode(semester=member.semester))

        if not member.section:
            return
        key = key + (member.section,)
        section = self._upsert(
            self._index.sections, key,
            semester.sections, lambda: SectionNode(section=member.section))
        section.total_members += 1

    @staticmethod
    def _upsert(index, key, siblings, factory):
        node = index.get(key)
        if node is None:
            node = factory()
            index[key] = node
            siblings.append(node)
        return node


def build_hierarchy(members: Iterable[RosterMember]) -> HierarchyTree:
    builder = HierarchyBuilder()
    for member in members:
        builder.add(member)
    return builder.tree


def summarize(tree: HierarchyTree, skipped_rows: int = 0) -> HierarchyStats:
    return HierarchyStats(
        total_members=tree.total_members,
        total_students=tree.total_students,
        total_faculty=tree.total_faculty,
        total_staff=tree.total_staff,
        department_count=len(tree.departments),
        skipped_rows=skipped_rows,
    )


def build_from_payload(payload: bytes) -> Tuple[HierarchyTree, HierarchyStats]:
    """Decode, parse and aggregate a roster upload in one pass."""
    members, skipped = parse_members(decode_roster(payload))
    tree = build_hierarchy(members)
    if skipped:
        logger.info("Roster parsed with %s skipped row(s)", skipped)
    return tree, summarize(tree, skipped)


def count_rows(payload: bytes) -> int:
    """Number of non-blank records after the header, used by typed rosters."""
    return sum(1 for _ in iter_records(decode_roster(payload)))
