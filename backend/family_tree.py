"""Family tree construction, indexing and editing utilities."""

import json
import logging
import threading
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any, Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("vanshavali.family_tree")

EXPORT_VARIABLE = "familyMembers"


class FamilyTreeError(Exception):
    """Base class for family tree errors."""


class EmptyInputError(FamilyTreeError):
    """Raised when there are no person records to build a tree from."""


class TreeNotLoadedError(FamilyTreeError):
    """Raised when the index is needed but no family data has been loaded."""


# ============================================================================
# Records
# ============================================================================

class PersonRecord(BaseModel):
    """One person as stored in the flat member list."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str = Field(min_length=1)
    name_en: str | None = Field(default=None, alias="nameEn")
    birth_year: int | None = Field(default=None, alias="birthYear")
    generation: int
    parent_id: int | None = Field(default=None, alias="parentId")

    def to_dict(self) -> dict[str, Any]:
        """Serialize in export key order, leaving out unknown optional fields."""
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.name_en is not None:
            data["nameEn"] = self.name_en
        if self.birth_year is not None:
            data["birthYear"] = self.birth_year
        data["generation"] = self.generation
        data["parentId"] = self.parent_id
        return data


def parse_records(raw_records: Iterable[Any]) -> list[PersonRecord]:
    """Validate raw member dicts, skipping entries without an id or with bad fields."""
    records = []
    for position, item in enumerate(raw_records):
        if not isinstance(item, dict) or not item.get("id"):
            logger.warning(f"Skipping member entry at position {position}: missing id")
            continue
        try:
            records.append(PersonRecord.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping invalid member entry at position {position}: {e}")
    return records


@dataclass
class IntegrityIssue:
    """A recoverable problem found in the member list."""
    kind: str  # duplicate_id | no_root | multiple_roots | dangling_parent
    person_id: int | None
    message: str


def check_integrity(records: list[PersonRecord]) -> list[IntegrityIssue]:
    """
    Report problems the tree builder recovers from silently.

    None of these stop the tree from being built, but a tree built from
    records with issues may not look the way the data author intended.
    """
    issues = []
    ids: set[int] = set()
    roots = []

    for record in records:
        if record.id in ids:
            issues.append(IntegrityIssue(
                "duplicate_id", record.id,
                f"Duplicate id {record.id} ({record.name}); only the first record is used",
            ))
            continue
        ids.add(record.id)
        if record.parent_id is None:
            roots.append(record)

    for record in records:
        if record.parent_id is not None and (record.parent_id not in ids or record.parent_id == record.id):
            issues.append(IntegrityIssue(
                "dangling_parent", record.id,
                f"{record.name} (id {record.id}) references missing parent {record.parent_id}; "
                f"this branch is left out of the tree",
            ))

    if records and not roots:
        issues.append(IntegrityIssue(
            "no_root", records[0].id,
            f"No record without a parent; using the first record ({records[0].name}) as root",
        ))
    elif len(roots) > 1:
        issues.append(IntegrityIssue(
            "multiple_roots", roots[-1].id,
            f"{len(roots)} records have no parent; using the last one ({roots[-1].name}) as root",
        ))

    return issues


# ============================================================================
# Tree Builder
# ============================================================================

@dataclass
class TreeNode:
    """A record together with the child nodes it owns, in input order."""
    record: PersonRecord
    children: list["TreeNode"] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.record.id


def build_tree(records: list[PersonRecord]) -> TreeNode:
    """
    Rebuild the rooted tree from a flat list of records.

    Children referencing a parent that is not in the list are dropped. If
    no record is parentless the first record becomes the root.
    """
    if not records:
        raise EmptyInputError("No member records to build a family tree from")

    nodes: dict[int, TreeNode] = {}
    for record in records:
        if record.id not in nodes:
            nodes[record.id] = TreeNode(record=record.model_copy())

    root = None
    placed: set[int] = set()
    for record in records:
        if record.id in placed:
            continue
        placed.add(record.id)
        node = nodes[record.id]

        if record.parent_id is None:
            root = node
        else:
            parent = nodes.get(record.parent_id)
            if parent is not None and parent is not node:
                parent.children.append(node)

    if root is None:
        logger.warning("No root record found, falling back to the first record")
        root = nodes[records[0].id]
        # Detach the root from its parent so the nodes form a tree again
        former_parent = nodes.get(root.record.parent_id)
        if former_parent is not None:
            former_parent.children = [c for c in former_parent.children if c is not root]

    return root


def flatten_tree(root: TreeNode) -> list[PersonRecord]:
    """Flatten a tree back into records, taking each parentId from the tree shape."""
    flat = []

    def traverse(node: TreeNode, parent_id: int | None):
        flat.append(node.record.model_copy(update={"parent_id": parent_id}))
        for child in node.children:
            traverse(child, node.id)

    traverse(root, None)
    flat.sort(key=lambda r: r.id)
    return flat


# ============================================================================
# Person Index
# ============================================================================

@dataclass
class IndexedPerson:
    """
    A person reachable from the root.

    Parent and children are held as ids and resolved through the owning
    PersonIndex, so the index stays the only owner of every person.
    """
    id: int
    name: str
    name_en: str | None
    birth_year: int | None
    generation: int
    parent_id: int | None = None
    child_ids: list[int] = field(default_factory=list)


class PersonIndex:
    """Flat id -> person mapping with generation statistics."""

    def __init__(self):
        self.persons: dict[int, IndexedPerson] = {}
        self.total_members = 0
        self.max_generation = 0
        self.generations: dict[int, list[IndexedPerson]] = {}
        self.root_id: int | None = None

    @classmethod
    def from_tree(cls, root: TreeNode) -> "PersonIndex":
        index = cls()
        index.root_id = root.id
        index._index_node(root, None)
        # Lookups and scans see persons in ascending id order
        index.persons = dict(sorted(index.persons.items()))
        return index

    def _index_node(self, node: TreeNode, parent: IndexedPerson | None) -> IndexedPerson | None:
        if node is None or not node.record.id or node.record.id in self.persons:
            return None

        record = node.record
        person = IndexedPerson(
            id=record.id,
            name=record.name,
            name_en=record.name_en,
            birth_year=record.birth_year,
            generation=record.generation,
            parent_id=parent.id if parent else None,
        )
        self.persons[person.id] = person

        self.total_members += 1
        if person.generation > self.max_generation:
            self.max_generation = person.generation
        self.generations.setdefault(person.generation, []).append(person)

        for child in node.children:
            indexed_child = self._index_node(child, person)
            if indexed_child is not None:
                person.child_ids.append(indexed_child.id)

        return person

    def __len__(self) -> int:
        return len(self.persons)

    def __contains__(self, person_id: object) -> bool:
        return person_id in self.persons

    def __iter__(self) -> Iterator[IndexedPerson]:
        return iter(self.persons.values())

    @property
    def root(self) -> IndexedPerson | None:
        return self.persons.get(self.root_id) if self.root_id is not None else None

    def get(self, person_id: int | None) -> IndexedPerson | None:
        if person_id is None:
            return None
        return self.persons.get(person_id)

    def parent_of(self, person: IndexedPerson) -> IndexedPerson | None:
        return self.get(person.parent_id)

    def children_of(self, person: IndexedPerson) -> list[IndexedPerson]:
        return [self.persons[child_id] for child_id in person.child_ids if child_id in self.persons]

    def siblings_of(self, person: IndexedPerson) -> list[IndexedPerson]:
        parent = self.parent_of(person)
        if not parent:
            return []
        return [c for c in self.children_of(parent) if c.id != person.id]

    def ancestors_of(self, person: IndexedPerson) -> list[IndexedPerson]:
        """Path from the person up to the root: [self, parent, ..., root]."""
        path = []
        seen = set()
        current = person
        while current is not None and current.id not in seen:
            path.append(current)
            seen.add(current.id)
            current = self.parent_of(current)
        return path

    def descendants_of(self, person: IndexedPerson) -> list[IndexedPerson]:
        """All descendants, each child followed by its own descendants."""
        results = []
        for child in self.children_of(person):
            results.append(child)
            results.extend(self.descendants_of(child))
        return results

    def members_of_generation(self, generation: int) -> list[IndexedPerson]:
        return list(self.generations.get(generation, []))


def flatten_index(index: PersonIndex) -> list[PersonRecord]:
    """Turn an index back into a flat member list sorted by id."""
    records = [
        PersonRecord(
            id=p.id,
            name=p.name,
            name_en=p.name_en,
            birth_year=p.birth_year,
            generation=p.generation,
            parent_id=p.parent_id,
        )
        for p in index
    ]
    records.sort(key=lambda r: r.id)
    return records


# ============================================================================
# Views over the index
# ============================================================================

def get_person_data(index: PersonIndex, person: IndexedPerson) -> dict[str, Any]:
    """Extract display data for a person."""
    parent = index.parent_of(person)
    return {
        "id": person.id,
        "name": person.name,
        "nameEn": person.name_en,
        "birthYear": person.birth_year,
        "generation": person.generation,
        "parentId": person.parent_id,
        "parentName": parent.name if parent else None,
        "childCount": len(person.child_ids),
    }


def build_descendant_tree(index: PersonIndex, person_id: int, max_depth: int = 10) -> dict[str, Any] | None:
    """
    Build a descendant tree (going DOWN) from a person.
    Returns a D3.js-compatible hierarchical structure.
    """
    person = index.get(person_id)
    if not person:
        return None

    def build_node(current: IndexedPerson, depth: int) -> dict[str, Any]:
        node = get_person_data(index, current)
        if depth >= max_depth:
            return node

        children = [build_node(child, depth + 1) for child in index.children_of(current)]
        # Leaf nodes carry no children array
        if children:
            node["children"] = children
        return node

    return build_node(person, 0)


def get_extended_lineage_ids(index: PersonIndex, person_id: int) -> list[int]:
    """
    Ids making up a person's lineage view: direct ancestors, the siblings of
    the person and of every ancestor, and all of the person's descendants.
    """
    person = index.get(person_id)
    if not person:
        return []

    ids: dict[int, None] = {}
    ancestors = index.ancestors_of(person)
    for ancestor in ancestors:
        ids[ancestor.id] = None

    for ancestor in ancestors:
        parent = index.parent_of(ancestor)
        if parent:
            for sibling in index.children_of(parent):
                ids[sibling.id] = None

    for descendant in index.descendants_of(person):
        ids[descendant.id] = None

    return list(ids)


def export_records_snippet(records: list[PersonRecord]) -> str:
    """Serialize the member list as a loadable data.js snippet."""
    content = json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False)
    return f"const {EXPORT_VARIABLE} = {content};"


# ============================================================================
# Validation for new members
# ============================================================================

def check_birth_year_consistency(birth_year: int | None, parent_birth_year: int | None) -> list[str]:
    """Check a new member's birth year against the parent's. Returns warnings."""
    warnings = []
    if birth_year is None or parent_birth_year is None:
        return warnings

    parent_age = birth_year - parent_birth_year
    if parent_age < 10:
        warnings.append(f"WARNING: Parent age at child's birth ({parent_age}) is too young (< 10)")
    elif parent_age > 80:
        warnings.append(f"WARNING: Parent age at child's birth ({parent_age}) exceeds 80 years")
    return warnings


def calculate_person_similarity(
    existing: IndexedPerson,
    name: str,
    name_en: str | None = None,
    birth_year: int | None = None,
) -> float:
    """
    Similarity (0.0 to 1.0) between an indexed person and a candidate.

    Name similarity is the better of the native and romanized comparisons.
    When both birth years are known they count for 30%.
    """
    name_score = SequenceMatcher(None, existing.name.lower(), name.lower()).ratio()
    if name_en and existing.name_en:
        en_ratio = SequenceMatcher(None, existing.name_en.lower(), name_en.lower()).ratio()
        name_score = max(name_score, en_ratio)

    if existing.birth_year is None or birth_year is None:
        return name_score

    year_diff = abs(existing.birth_year - birth_year)
    if year_diff == 0:
        year_score = 1.0
    elif year_diff <= 1:
        year_score = 0.8
    elif year_diff <= 3:
        year_score = 0.6
    elif year_diff <= 5:
        year_score = 0.4
    else:
        year_score = 0.0

    return name_score * 0.7 + year_score * 0.3


def find_potential_duplicates(
    index: PersonIndex,
    parent_id: int,
    name: str,
    name_en: str | None = None,
    birth_year: int | None = None,
    threshold: float = 0.85,
) -> list[dict[str, Any]]:
    """Existing children of the parent that look like the candidate, best first."""
    parent = index.get(parent_id)
    if not parent:
        return []

    matches = []
    for child in index.children_of(parent):
        score = calculate_person_similarity(child, name, name_en, birth_year)
        if score >= threshold:
            matches.append({"person": child, "similarity": score, "percentage": int(score * 100)})

    matches.sort(key=lambda m: m["similarity"], reverse=True)
    return matches


# ============================================================================
# Store
# ============================================================================

class FamilyTreeStore:
    """
    Holds the member list, its tree and its index.

    The index is never patched in place: every change builds a new tree and
    index from the full member list and swaps them in together.
    """

    def __init__(self, records: list[PersonRecord] | None = None, storage=None):
        self._lock = threading.RLock()
        self._records: list[PersonRecord] = []
        self._root: TreeNode | None = None
        self._index: PersonIndex | None = None
        self.integrity_issues: list[IntegrityIssue] = []
        self.storage = storage
        if records is not None:
            self.rebuild(records)

    @property
    def index(self) -> PersonIndex | None:
        return self._index

    @property
    def root(self) -> TreeNode | None:
        return self._root

    @property
    def records(self) -> list[PersonRecord]:
        return list(self._records)

    def require_index(self) -> PersonIndex:
        index = self._index
        if index is None:
            raise TreeNotLoadedError("No family data loaded")
        return index

    def rebuild(self, records: list[PersonRecord]) -> PersonIndex:
        """Replace the member list and rebuild tree and index from scratch."""
        records = list(records)
        issues = check_integrity(records)
        for issue in issues:
            logger.warning(issue.message)

        try:
            root = build_tree(records)
        except EmptyInputError:
            logger.warning("Rebuild with no member records; queries are disabled until data is loaded")
            with self._lock:
                self._records = records
                self._root = None
                self._index = None
                self.integrity_issues = issues
            raise

        index = PersonIndex.from_tree(root)
        with self._lock:
            self._records = records
            self._root = root
            self._index = index
            self.integrity_issues = issues

        unreachable = len({r.id for r in records}) - index.total_members
        logger.info(
            f"Family tree ready: {index.total_members} members, {index.max_generation} generations"
            + (f", {unreachable} unreachable" if unreachable else "")
        )
        return index

    def add_member(
        self,
        parent_id: int,
        name: str,
        name_en: str | None = None,
        birth_year: int | None = None,
    ) -> dict[str, Any]:
        """
        Append a new child of an existing member, persist and rebuild.

        Returns dict with 'record' and 'warnings'.
        """
        with self._lock:
            index = self.require_index()
            parent = index.get(parent_id)
            if not parent:
                raise ValueError(f"Parent not found: {parent_id}")

            name = (name or "").strip()
            if not name:
                raise ValueError("A name is required for the new member")
            name_en = (name_en or "").strip() or None

            warnings = check_birth_year_consistency(birth_year, parent.birth_year)
            for match in find_potential_duplicates(index, parent_id, name, name_en, birth_year):
                existing = match["person"]
                warnings.append(
                    f"WARNING: {existing.name} (id {existing.id}) looks like the same person "
                    f"({match['percentage']}% similar)"
                )

            new_id = max(r.id for r in self._records) + 1
            record = PersonRecord(
                id=new_id,
                name=name,
                name_en=name_en,
                birth_year=birth_year,
                generation=parent.generation + 1,
                parent_id=parent.id,
            )
            records = self._records + [record]

            if self.storage is not None:
                self.storage.save(records)
            self.rebuild(records)

        logger.info(f"Added member {record.name} (id {record.id}) under {parent.name}")
        return {"record": record, "warnings": warnings}

    def reset(self) -> PersonIndex:
        """Drop local edits and rebuild from the base member list."""
        if self.storage is None:
            raise FamilyTreeError("No storage configured to reset from")
        with self._lock:
            self.storage.clear()
            index = self.rebuild(self.storage.load())
        logger.info("Family data reset to base records")
        return index

    def export_snippet(self) -> str:
        return export_records_snippet(self._records)
