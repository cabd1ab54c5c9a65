"""Document slots carried by an applicant record."""

from enum import Enum
from typing import FrozenSet, Iterable


class DocumentSlot(str, Enum):
    """Named document positions on an applicant record."""
    PRE_EMPLOYMENT = "pre_employment"
    POLICY_RULES = "policy_rules"


ALL_SLOTS: FrozenSet[DocumentSlot] = frozenset(DocumentSlot)


def parse_slot(value: str) -> DocumentSlot:
    """Resolve a slot name, raising ValueError for unknown names."""
    try:
        return DocumentSlot(value)
    except ValueError:
        raise ValueError(
            f"Unknown document slot '{value}'. "
            f"Expected one of: {sorted(s.value for s in DocumentSlot)}"
        )


def parse_slots(values: Iterable[str]) -> FrozenSet[DocumentSlot]:
    return frozenset(parse_slot(v) for v in values)
