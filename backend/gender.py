"""Heuristic gender inference from a person's romanized name.

The rules are tuned for the names in this family's records and are not a
general classifier. Callers that know better can pass their own
classifier (any callable taking a person and returning a Gender).
"""

from enum import Enum
from typing import Any, Callable, Iterable


class Gender(str, Enum):
    MALE = "M"
    FEMALE = "F"


GenderClassifier = Callable[[Any], Gender]


KNOWN_FEMALE_NAMES = ("anvesha", "hitaxi", "mahi", "manvi", "maya", "bindu", "neelu", "tara")

# Male names that end in "a" or "i" and would otherwise look female
MALE_NAME_PARTS = (
    "chandra", "krishna", "datt", "datta", "ballabh", "bhallabh",
    "prasad", "kumar", "lal", "ram", "nath", "bindeshwari",
)

FEMALE_ENDINGS = ("i", "ee")


class NameGenderClassifier:
    """Classify by first name: known females, male name parts, then suffix rules."""

    def __init__(
        self,
        known_female_names: Iterable[str] = KNOWN_FEMALE_NAMES,
        male_name_parts: Iterable[str] = MALE_NAME_PARTS,
        female_endings: Iterable[str] = FEMALE_ENDINGS,
        female_a_endings: Iterable[str] = ("undra",),
    ):
        self.known_female_names = {n.lower() for n in known_female_names}
        self.male_name_parts = tuple(p.lower() for p in male_name_parts)
        self.female_endings = tuple(female_endings)
        self.female_a_endings = tuple(female_a_endings)

    def __call__(self, person: Any) -> Gender:
        name = (getattr(person, "name_en", None) or "").lower().strip()
        if not name:
            return Gender.MALE

        first_name = name.split()[0]
        if first_name in self.known_female_names:
            return Gender.FEMALE

        if any(part in name for part in self.male_name_parts):
            return Gender.MALE

        if first_name.endswith(self.female_endings):
            return Gender.FEMALE
        if first_name.endswith("a"):
            # "a" endings are ambiguous (Anvesha vs Krishna); default to male
            if first_name.endswith(self.female_a_endings):
                return Gender.FEMALE
            return Gender.MALE

        return Gender.MALE


default_classifier = NameGenderClassifier()


def infer_gender(person: Any, classifier: GenderClassifier | None = None) -> Gender:
    """Infer the gender of a person, using the default name heuristic unless overridden."""
    return (classifier or default_classifier)(person)


def is_female(person: Any, classifier: GenderClassifier | None = None) -> bool:
    return infer_gender(person, classifier) is Gender.FEMALE
