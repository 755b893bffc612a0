"""Named modes that steer an upload run."""

from __future__ import annotations

from enum import Enum
from typing import List, Type, TypeVar

E = TypeVar("E", bound="_ChoiceEnum")


class _ChoiceEnum(str, Enum):
    @classmethod
    def choices(cls) -> List[str]:
        return [member.value for member in cls]


class ResolutionMode(_ChoiceEnum):
    """Whether category creation really happens or is only simulated."""

    COMMIT = "commit"
    PREVIEW = "preview"


class ImportMode(_ChoiceEnum):
    """How rows map onto new versus existing courses."""

    CREATE_NEW = "create_new"
    CREATE_ALL = "create_all"
    CREATE_OR_UPDATE = "create_or_update"
    UPDATE_ONLY = "update_only"

    @property
    def can_create(self) -> bool:
        return self is not ImportMode.UPDATE_ONLY

    @property
    def can_update(self) -> bool:
        return self in (ImportMode.CREATE_OR_UPDATE, ImportMode.UPDATE_ONLY)


class UpdateMode(_ChoiceEnum):
    """Which values an update is allowed to write onto an existing course."""

    NOTHING = "nothing"
    DATA_ONLY = "data_only"
    DATA_OR_DEFAULTS = "data_or_defaults"
    MISSING_WITH_DATA_OR_DEFAULTS = "missing_with_data_or_defaults"


class OutputMode(_ChoiceEnum):
    """Reporter variant selected once per run."""

    NONE = "none"
    PLAIN = "plain"
    TABLE = "table"


def parse_mode(enum_cls: Type[E], flag_value: str | None, *, default: E) -> E:
    """
    Convert a CLI flag into a member of ``enum_cls``.

    Examples
    --------
    - ``None`` or empty string → ``default``.
    - ``"Create-Or-Update"`` → ``ImportMode.CREATE_OR_UPDATE``.
    """
    if not flag_value:
        return default
    token = flag_value.strip().lower().replace("-", "_")
    try:
        return enum_cls(token)
    except ValueError as exc:
        valid = ", ".join(enum_cls.choices())
        raise ValueError(f"Unknown {enum_cls.__name__} '{flag_value}'. Valid options: {valid}") from exc


__all__ = [
    "ImportMode",
    "OutputMode",
    "ResolutionMode",
    "UpdateMode",
    "parse_mode",
]
