"""
PersonId Value Object - identifies a messaging participant.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PersonId:
    value: str  # profile id of the participant

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError("PersonId cannot be empty")

    def __str__(self) -> str:
        return self.value
