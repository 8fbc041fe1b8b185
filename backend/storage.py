"""Loading and saving the flat member list.

Base data is read from a JSON file or a `const familyMembers = [...];`
snippet. Edits are written to a separate local file which, when present,
takes precedence over the base data. The last write wins.
"""

import json
import logging
import os
import re
from typing import Any

from family_tree import PersonRecord, parse_records

logger = logging.getLogger("vanshavali.storage")

SNIPPET_PATTERN = re.compile(r"^\s*(?:const|let|var)\s+\w+\s*=\s*(.*?);?\s*$", re.DOTALL)


def parse_records_snippet(content: str) -> list[Any]:
    """Read the member list out of a data.js style snippet (or plain JSON)."""
    match = SNIPPET_PATTERN.match(content)
    payload = match.group(1) if match else content
    data = json.loads(payload)
    if not isinstance(data, list):
        raise ValueError("Member data must be a list of records")
    return data


class FamilyDataStorage:
    """File-backed persistence for the member list."""

    def __init__(self, base_path: str, edits_path: str):
        self.base_path = base_path
        self.edits_path = edits_path

    @property
    def has_local_edits(self) -> bool:
        return os.path.exists(self.edits_path)

    def load(self) -> list[PersonRecord]:
        """Load local edits if there are any, otherwise the base data."""
        if self.has_local_edits:
            try:
                with open(self.edits_path, encoding="utf-8") as f:
                    raw = json.load(f)
                if not isinstance(raw, list):
                    raise ValueError("Member data must be a list of records")
                records = parse_records(raw)
                logger.info(f"Loaded {len(records)} members from local edits ({self.edits_path})")
                return records
            except (OSError, ValueError) as e:
                logger.error(f"Could not read local edits, falling back to base data: {e}")

        return self.load_base()

    def load_base(self) -> list[PersonRecord]:
        if not os.path.exists(self.base_path):
            logger.warning(f"Base data file not found: {self.base_path}")
            return []

        with open(self.base_path, encoding="utf-8") as f:
            content = f.read()
        records = parse_records(parse_records_snippet(content))
        logger.info(f"Loaded {len(records)} members from base data ({self.base_path})")
        return records

    def save(self, records: list[PersonRecord]) -> None:
        content = json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False)
        with open(self.edits_path, "w", encoding="utf-8") as f:
            f.write(content)
        logger.info(f"Saved {len(records)} members to {self.edits_path}")

    def clear(self) -> None:
        """Remove local edits so the base data is used again."""
        if self.has_local_edits:
            os.unlink(self.edits_path)
            logger.info(f"Removed local edits ({self.edits_path})")
