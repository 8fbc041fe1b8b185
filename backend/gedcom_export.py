"""GEDCOM export of the flat member list."""

import logging

from gedcom.element.element import Element
from gedcom.element.family import FamilyElement
from gedcom.element.individual import IndividualElement

from family_tree import PersonRecord
from gender import Gender, GenderClassifier, infer_gender

logger = logging.getLogger("vanshavali.gedcom_export")


def individual_pointer(person_id: int) -> str:
    return f"@I{person_id}@"


def family_pointer(parent_id: int) -> str:
    return f"@F{parent_id}@"


def _header() -> Element:
    head = Element(level=0, pointer="", tag="HEAD", value="")
    sour = Element(level=1, pointer="", tag="SOUR", value="VANSHAVALI")
    gedc = Element(level=1, pointer="", tag="GEDC", value="")
    gedc.add_child_element(Element(level=2, pointer="", tag="VERS", value="5.5.1"))
    gedc.add_child_element(Element(level=2, pointer="", tag="FORM", value="LINEAGE-LINKED"))
    head.add_child_element(sour)
    head.add_child_element(gedc)
    head.add_child_element(Element(level=1, pointer="", tag="CHAR", value="UTF-8"))
    return head


def build_gedcom_elements(
    records: list[PersonRecord],
    classifier: GenderClassifier | None = None,
) -> list[Element]:
    """
    Build GEDCOM records for every member, plus one family per parent.

    Each parent gets a FAM record listing their children. The parent is
    HUSB or WIFE depending on the inferred gender.
    """
    known_ids = {r.id for r in records}
    children_by_parent: dict[int, list[int]] = {}
    for record in records:
        if record.parent_id in known_ids and record.parent_id != record.id:
            children_by_parent.setdefault(record.parent_id, []).append(record.id)

    elements: list[Element] = [_header()]
    genders: dict[int, Gender] = {}

    for record in records:
        gender = infer_gender(record, classifier)
        genders[record.id] = gender

        indi = IndividualElement(level=0, pointer=individual_pointer(record.id), tag="INDI", value="")

        name_elem = Element(level=1, pointer="", tag="NAME", value=record.name)
        if record.name_en:
            romn = Element(level=2, pointer="", tag="ROMN", value=record.name_en)
            romn.add_child_element(Element(level=3, pointer="", tag="TYPE", value="romanized"))
            name_elem.add_child_element(romn)
        indi.add_child_element(name_elem)

        indi.add_child_element(Element(level=1, pointer="", tag="SEX", value=gender.value))

        if record.birth_year is not None:
            birth_elem = Element(level=1, pointer="", tag="BIRT", value="")
            birth_elem.add_child_element(Element(level=2, pointer="", tag="DATE", value=str(record.birth_year)))
            indi.add_child_element(birth_elem)

        indi.add_child_element(Element(level=1, pointer="", tag="_GEN", value=str(record.generation)))

        if record.id in children_by_parent:
            indi.add_child_element(Element(level=1, pointer="", tag="FAMS", value=family_pointer(record.id)))
        if record.parent_id in children_by_parent and record.id in children_by_parent[record.parent_id]:
            indi.add_child_element(
                Element(level=1, pointer="", tag="FAMC", value=family_pointer(record.parent_id))
            )

        elements.append(indi)

    for parent_id, child_ids in children_by_parent.items():
        fam = FamilyElement(level=0, pointer=family_pointer(parent_id), tag="FAM", value="")
        role = "WIFE" if genders.get(parent_id) is Gender.FEMALE else "HUSB"
        fam.add_child_element(Element(level=1, pointer="", tag=role, value=individual_pointer(parent_id)))
        for child_id in child_ids:
            fam.add_child_element(Element(level=1, pointer="", tag="CHIL", value=individual_pointer(child_id)))
        elements.append(fam)

    elements.append(Element(level=0, pointer="", tag="TRLR", value=""))
    return elements


def export_gedcom(records: list[PersonRecord], classifier: GenderClassifier | None = None) -> str:
    """Export the member list as GEDCOM text."""
    lines = []

    def element_to_lines(element: Element, level: int = 0):
        """Recursively convert an element to GEDCOM lines."""
        pointer = element.get_pointer() or ""
        tag = element.get_tag()
        value = element.get_value() or ""

        line = f"{level} {pointer} {tag}" if pointer else f"{level} {tag}"
        if value:
            line += f" {value}"
        lines.append(line)

        for child in element.get_child_elements():
            element_to_lines(child, level + 1)

    for element in build_gedcom_elements(records, classifier):
        element_to_lines(element, 0)

    logger.info(f"Exported {len(records)} members as GEDCOM")
    return "\n".join(lines)
