"""
Shared pieces for list requests.
"""
import enum


class SortOrder(str, enum.Enum):
    """Sort direction."""
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def _missing_(cls, value):
        # Accept "ASC" / "Desc" etc.
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None
