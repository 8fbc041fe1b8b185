"""Tests for name based gender inference."""

import os
import pytest
import sys

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from family_tree import PersonRecord
from gender import Gender, NameGenderClassifier, infer_gender, is_female


def person(name_en):
    return PersonRecord(id=1, name="नाम", name_en=name_en, generation=1)


class TestInferGender:
    """Tests for the default name heuristic."""

    @pytest.mark.parametrize("name_en", ["Anvesha Pandey", "Maya Pandey", "Tara Devi", "Manvi Pandey"])
    def test_known_female_names(self, name_en):
        assert infer_gender(person(name_en)) is Gender.FEMALE

    @pytest.mark.parametrize("name_en", ["Harikrishna Pandey", "Ramchandra Pandey", "Bindeshwari Prasad"])
    def test_male_name_parts_override_endings(self, name_en):
        assert infer_gender(person(name_en)) is Gender.MALE

    def test_male_name_part_anywhere_in_name(self):
        """Parts are looked for in the whole name, not only the first name."""
        assert infer_gender(person("Shanti Lal")) is Gender.MALE

    @pytest.mark.parametrize("name_en", ["Shanti Pandey", "Radhee Pandey"])
    def test_female_endings(self, name_en):
        assert infer_gender(person(name_en)) is Gender.FEMALE

    def test_a_ending_defaults_to_male(self):
        assert infer_gender(person("Mohana Pandey")) is Gender.MALE

    def test_undra_ending_is_female(self):
        assert infer_gender(person("Sundra Pandey")) is Gender.FEMALE

    def test_consonant_ending_is_male(self):
        assert infer_gender(person("Rahul Pandey")) is Gender.MALE

    def test_missing_romanized_name(self):
        assert infer_gender(person(None)) is Gender.MALE
        assert infer_gender(person("   ")) is Gender.MALE

    def test_case_insensitive(self):
        assert is_female(person("MAYA PANDEY"))


class TestCustomClassifier:
    """Tests for overriding the heuristic."""

    def test_callable_override(self):
        assert infer_gender(person("Rahul Pandey"), lambda p: Gender.FEMALE) is Gender.FEMALE

    def test_configured_name_lists(self):
        classifier = NameGenderClassifier(known_female_names=["rahul"])
        assert is_female(person("Rahul Pandey"), classifier)
        assert not is_female(person("Maya Pandey"), classifier)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
