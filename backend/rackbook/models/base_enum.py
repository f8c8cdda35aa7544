# backend/rackbook/models/base_enum.py
"""
Enum column type storing member VALUES ("General User", "weekday").

Schedules are also written by seed scripts and admin consoles that know the
display strings, not the Python member names, so the column holds values.
"""

from enum import Enum
from typing import List, Type

from sqlalchemy import Enum as SAEnum


def _member_values(enum_class: Type[Enum]) -> List[str]:
    return [member.value for member in enum_class]


def create_safe_enum(enum_class: Type[Enum], name: str) -> SAEnum:
    """
    Non-native, string-validated Enum column for ``enum_class``.

    Args:
        enum_class: PeriodType or RecurrenceType
        name: Type name, shared by every column of the same enum
    """
    return SAEnum(
        enum_class,
        name=name,
        native_enum=False,
        validate_strings=True,
        length=32,
        values_callable=_member_values,
    )
