"""Common utility functions."""
from typing import Optional
from uuid import UUID


def is_valid_uuid(uuid_string: Optional[str]) -> bool:
    """Check if string is valid UUID."""
    return canonical_uuid(uuid_string) is not None


def canonical_uuid(uuid_string: Optional[str]) -> Optional[str]:
    """Lower-case hyphenated form of a UUID string, or None if it is not one."""
    if not isinstance(uuid_string, str):
        return None
    try:
        return str(UUID(uuid_string))
    except ValueError:
        return None
