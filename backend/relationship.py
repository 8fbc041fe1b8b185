"""Relationship calculation between two members of the family tree."""

import logging
from dataclasses import dataclass
from enum import Enum

from family_tree import IndexedPerson, PersonIndex
from gender import GenderClassifier, is_female

logger = logging.getLogger("vanshavali.relationship")


class Kinship(str, Enum):
    SAME_PERSON = "same_person"
    NO_RELATION = "no_relation"
    SON = "son"
    DAUGHTER = "daughter"
    GRANDSON = "grandson"
    GRANDDAUGHTER = "granddaughter"
    GREAT_GRANDSON = "great_grandson"
    GREAT_GRANDDAUGHTER = "great_granddaughter"
    DESCENDANT = "descendant"
    FATHER = "father"
    MOTHER = "mother"
    GRANDFATHER = "grandfather"
    GRANDMOTHER = "grandmother"
    GREAT_GRANDFATHER = "great_grandfather"
    GREAT_GRANDMOTHER = "great_grandmother"
    ANCESTOR = "ancestor"
    BROTHER = "brother"
    SISTER = "sister"
    COUSIN_BROTHER = "cousin_brother"
    COUSIN_SISTER = "cousin_sister"
    PATERNAL_AUNT = "paternal_aunt"
    ELDER_UNCLE = "elder_uncle"
    YOUNGER_UNCLE = "younger_uncle"
    UNCLE = "uncle"
    NEPHEW = "nephew"
    NIECE = "niece"
    GRANDFATHER_BY_RELATION = "grandfather_by_relation"
    GRANDMOTHER_BY_RELATION = "grandmother_by_relation"
    GRANDSON_BY_RELATION = "grandson_by_relation"
    GRANDDAUGHTER_BY_RELATION = "granddaughter_by_relation"
    DISTANT_RELATIVE = "distant_relative"


KINSHIP_TERMS = {
    "hi": {
        Kinship.SAME_PERSON: "एक ही व्यक्ति",
        Kinship.NO_RELATION: "कोई संबंध नहीं",
        Kinship.SON: "बेटा",
        Kinship.DAUGHTER: "बेटी",
        Kinship.GRANDSON: "पोता",
        Kinship.GRANDDAUGHTER: "पोती",
        Kinship.GREAT_GRANDSON: "परपोता",
        Kinship.GREAT_GRANDDAUGHTER: "परपोती",
        Kinship.DESCENDANT: "वंशज",
        Kinship.FATHER: "पिता",
        Kinship.MOTHER: "माता",
        Kinship.GRANDFATHER: "दादा",
        Kinship.GRANDMOTHER: "दादी",
        Kinship.GREAT_GRANDFATHER: "परदादा",
        Kinship.GREAT_GRANDMOTHER: "परदादी",
        Kinship.ANCESTOR: "पूर्वज",
        Kinship.BROTHER: "भाई",
        Kinship.SISTER: "बहन",
        Kinship.COUSIN_BROTHER: "चचेरा भाई",
        Kinship.COUSIN_SISTER: "चचेरी बहन",
        Kinship.PATERNAL_AUNT: "बुआ",
        Kinship.ELDER_UNCLE: "ताऊ",
        Kinship.YOUNGER_UNCLE: "चाचा",
        Kinship.UNCLE: "चाचा / ताऊ",
        Kinship.NEPHEW: "भतीजा",
        Kinship.NIECE: "भतीजी",
        Kinship.GRANDFATHER_BY_RELATION: "दादा (रिश्ते में)",
        Kinship.GRANDMOTHER_BY_RELATION: "दादी (रिश्ते में)",
        Kinship.GRANDSON_BY_RELATION: "पोता (रिश्ते में)",
        Kinship.GRANDDAUGHTER_BY_RELATION: "पोती (रिश्ते में)",
        Kinship.DISTANT_RELATIVE: "दूर के रिश्तेदार",
    },
    "en": {
        Kinship.SAME_PERSON: "same person",
        Kinship.NO_RELATION: "no relation",
        Kinship.SON: "son",
        Kinship.DAUGHTER: "daughter",
        Kinship.GRANDSON: "grandson",
        Kinship.GRANDDAUGHTER: "granddaughter",
        Kinship.GREAT_GRANDSON: "great-grandson",
        Kinship.GREAT_GRANDDAUGHTER: "great-granddaughter",
        Kinship.DESCENDANT: "descendant",
        Kinship.FATHER: "father",
        Kinship.MOTHER: "mother",
        Kinship.GRANDFATHER: "grandfather",
        Kinship.GRANDMOTHER: "grandmother",
        Kinship.GREAT_GRANDFATHER: "great-grandfather",
        Kinship.GREAT_GRANDMOTHER: "great-grandmother",
        Kinship.ANCESTOR: "ancestor",
        Kinship.BROTHER: "brother",
        Kinship.SISTER: "sister",
        Kinship.COUSIN_BROTHER: "cousin brother",
        Kinship.COUSIN_SISTER: "cousin sister",
        Kinship.PATERNAL_AUNT: "paternal aunt (bua)",
        Kinship.ELDER_UNCLE: "elder paternal uncle (tau)",
        Kinship.YOUNGER_UNCLE: "younger paternal uncle (chacha)",
        Kinship.UNCLE: "paternal uncle (chacha / tau)",
        Kinship.NEPHEW: "nephew",
        Kinship.NIECE: "niece",
        Kinship.GRANDFATHER_BY_RELATION: "grandfather (by relation)",
        Kinship.GRANDMOTHER_BY_RELATION: "grandmother (by relation)",
        Kinship.GRANDSON_BY_RELATION: "grandson (by relation)",
        Kinship.GRANDDAUGHTER_BY_RELATION: "granddaughter (by relation)",
        Kinship.DISTANT_RELATIVE: "distant relative",
    },
}


@dataclass
class RelationshipResult:
    """How person_b is related to person_a."""
    kinship: Kinship
    person_a: IndexedPerson
    person_b: IndexedPerson
    common_ancestor: IndexedPerson | None
    distance_a: int | None
    distance_b: int | None
    generation_difference: int

    def term(self, language: str = "hi") -> str:
        return kinship_term(self.kinship, language)


def kinship_term(kinship: Kinship, language: str = "hi") -> str:
    terms = KINSHIP_TERMS.get(language, KINSHIP_TERMS["hi"])
    return terms[kinship]


def relate(
    index: PersonIndex,
    person_a: IndexedPerson,
    person_b: IndexedPerson,
    classifier: GenderClassifier | None = None,
) -> RelationshipResult:
    """
    Work out what person_b is to person_a.

    Both ancestor paths are walked down from the root in lockstep; the last
    shared person is the lowest common ancestor. The distances of each
    person from it decide the kinship term.
    """
    generation_difference = person_b.generation - person_a.generation

    if person_a.id == person_b.id:
        return RelationshipResult(Kinship.SAME_PERSON, person_a, person_b, person_a, 0, 0, 0)

    path_a = index.ancestors_of(person_a)
    path_b = index.ancestors_of(person_b)

    common_ancestor = None
    for ancestor_a, ancestor_b in zip(reversed(path_a), reversed(path_b)):
        if ancestor_a.id != ancestor_b.id:
            break
        common_ancestor = ancestor_a

    if common_ancestor is None:
        logger.debug(f"No common ancestor for {person_a.id} and {person_b.id}")
        return RelationshipResult(
            Kinship.NO_RELATION, person_a, person_b, None, None, None, generation_difference,
        )

    distance_a = next(i for i, p in enumerate(path_a) if p.id == common_ancestor.id)
    distance_b = next(i for i, p in enumerate(path_b) if p.id == common_ancestor.id)

    kinship = classify_kinship(distance_a, distance_b, path_a, person_b, classifier)
    return RelationshipResult(
        kinship, person_a, person_b, common_ancestor, distance_a, distance_b, generation_difference,
    )


def classify_kinship(
    distance_a: int,
    distance_b: int,
    path_a: list[IndexedPerson],
    person_b: IndexedPerson,
    classifier: GenderClassifier | None = None,
) -> Kinship:
    """Kinship of person_b from their distances to the common ancestor."""
    steps = distance_b - distance_a
    female = is_female(person_b, classifier)

    # person_b descends from person_a
    if distance_a == 0:
        if steps == 1:
            return Kinship.DAUGHTER if female else Kinship.SON
        if steps == 2:
            return Kinship.GRANDDAUGHTER if female else Kinship.GRANDSON
        if steps == 3:
            return Kinship.GREAT_GRANDDAUGHTER if female else Kinship.GREAT_GRANDSON
        return Kinship.DESCENDANT

    # person_b is a direct ancestor of person_a
    if distance_b == 0:
        if steps == -1:
            return Kinship.MOTHER if female else Kinship.FATHER
        if steps == -2:
            return Kinship.GRANDMOTHER if female else Kinship.GRANDFATHER
        if steps == -3:
            return Kinship.GREAT_GRANDMOTHER if female else Kinship.GREAT_GRANDFATHER
        return Kinship.ANCESTOR

    if steps == 0:
        if distance_a == 1:
            return Kinship.SISTER if female else Kinship.BROTHER
        return Kinship.COUSIN_SISTER if female else Kinship.COUSIN_BROTHER

    if steps == -1:
        if female:
            return Kinship.PATERNAL_AUNT
        father = path_a[1]
        if person_b.birth_year is not None and father.birth_year is not None:
            if person_b.birth_year < father.birth_year:
                return Kinship.ELDER_UNCLE
            if person_b.birth_year > father.birth_year:
                return Kinship.YOUNGER_UNCLE
        return Kinship.UNCLE

    if steps == 1:
        return Kinship.NIECE if female else Kinship.NEPHEW

    if steps == -2:
        return Kinship.GRANDMOTHER_BY_RELATION if female else Kinship.GRANDFATHER_BY_RELATION

    if steps == 2:
        return Kinship.GRANDDAUGHTER_BY_RELATION if female else Kinship.GRANDSON_BY_RELATION

    return Kinship.DISTANT_RELATIVE


def describe_relationship(result: RelationshipResult, language: str = "hi") -> str:
    """Sentence describing a relationship result for display."""
    a, b = result.person_a, result.person_b

    if result.kinship is Kinship.SAME_PERSON:
        return "यह एक ही व्यक्ति है।" if language == "hi" else "This is the same person."

    if result.kinship is Kinship.NO_RELATION:
        if language == "hi":
            return "कोई संबंध नहीं मिला। ये शायद अलग-अलग परिवारों से हैं।"
        return "No relationship found. They are probably from different families."

    term = result.term(language)
    ancestor = result.common_ancestor.name
    if language == "hi":
        return (
            f"{b.name}, {a.name} के {term} हैं। "
            f"साझा पूर्वज: {ancestor}, पीढ़ी अंतर: {result.generation_difference}"
        )
    return (
        f"{b.name} is the {term} of {a.name}. "
        f"Common ancestor: {ancestor}, generation difference: {result.generation_difference}"
    )
