"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class Provider(str, Enum):
    """OAuth identity provider a user signed in with."""

    GITHUB = "GITHUB"
    GOOGLE = "GOOGLE"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return value in cls._value2member_map_
