"""Row parsing and naming helpers for course uploads."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

SHORTNAME_TOKEN = re.compile(r"(?<!%)%([+~-])?(\d*)([fi])")
TRAILING_NUMBER = re.compile(r"^(.*?)([0-9]+)$")
ENROLMENT_FIELD = re.compile(r"^enrolment_(\d+)(?:_(.+))?$")
ROLE_FIELD = re.compile(r"^role_(.+)$")


@dataclass(frozen=True)
class EnrolmentMethod:
    index: int
    method: str
    options: Dict[str, str] = field(default_factory=dict)


@dataclass
class ParsedRow:
    """A CSV row split into course fields, enrolment methods and role renames."""

    fields: Dict[str, str]
    enrolments: List[EnrolmentMethod] = field(default_factory=list)
    role_names: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)


def normalize_row(row: Mapping[str, Any]) -> Dict[str, str]:
    """Lower-case and trim column names, trim values, drop blank cells."""

    normalized: Dict[str, str] = {}
    for key, value in row.items():
        if key is None or value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        normalized[str(key).strip().lower()] = text
    return normalized


def parse_row(row: Mapping[str, Any]) -> ParsedRow:
    """Separate ``enrolment_<n>[_<option>]`` and ``role_<shortname>`` columns."""

    fields: Dict[str, str] = {}
    methods: Dict[int, str] = {}
    options: Dict[int, Dict[str, str]] = {}
    role_names: Dict[str, str] = {}

    for key, value in normalize_row(row).items():
        enrolment = ENROLMENT_FIELD.match(key)
        if enrolment:
            index = int(enrolment.group(1))
            if enrolment.group(2):
                options.setdefault(index, {})[enrolment.group(2)] = value
            else:
                methods[index] = value
            continue
        role = ROLE_FIELD.match(key)
        if role:
            role_names[role.group(1)] = value
            continue
        fields[key] = value

    enrolments = [
        EnrolmentMethod(index=index, method=method, options=options.get(index, {}))
        for index, method in sorted(methods.items())
    ]
    return ParsedRow(fields=fields, enrolments=enrolments, role_names=role_names)


def resolve_enrolments(
    enrolments: Iterable[EnrolmentMethod],
    valid_methods: Iterable[str],
) -> Tuple[Dict[str, Dict[str, str]], List[str]]:
    """Keep methods that exist; return ``({method: options}, warnings)``."""

    allowed = set(valid_methods)
    data: Dict[str, Dict[str, str]] = {}
    warnings: List[str] = []
    for entry in enrolments:
        if entry.method not in allowed:
            warnings.append(f"Unknown enrolment method '{entry.method}' (enrolment_{entry.index}) ignored")
            continue
        data[entry.method] = dict(entry.options)
    return data, warnings


def resolve_role_names(
    role_names: Mapping[str, str],
    role_ids: Mapping[str, int],
) -> Tuple[Dict[int, str], List[str]]:
    """Map role shortnames to ids; return ``({role_id: name}, invalid_shortnames)``."""

    resolved: Dict[int, str] = {}
    invalid: List[str] = []
    for shortname, name in role_names.items():
        role_id = role_ids.get(shortname)
        if role_id is None:
            invalid.append(shortname)
            continue
        resolved[role_id] = name
    return resolved, invalid


def generate_shortname(data: Mapping[str, Any], template: Optional[str]) -> Optional[str]:
    """Expand ``%f``/``%i`` placeholders in a shortname template.

    A placeholder may carry a case modifier (``+`` upper, ``-`` lower, ``~``
    title) and a maximum length, e.g. ``%-8f``. A ``%`` preceded by another
    ``%`` is left untouched.
    """

    if template is None or template == "":
        return None
    if "%" not in template:
        return template

    fullname = str(data.get("fullname") or "")
    idnumber = str(data.get("idnumber") or "")

    def _expand(match: re.Match[str]) -> str:
        modifier, length, kind = match.groups()
        value = fullname if kind == "f" else idnumber
        if modifier == "+":
            value = value.upper()
        elif modifier == "-":
            value = value.lower()
        elif modifier == "~":
            value = value.title()
        if length:
            value = value[: int(length)]
        return value

    result = SHORTNAME_TOKEN.sub(_expand, template).strip()
    return result or None


def _bump(value: str) -> str:
    match = TRAILING_NUMBER.match(value)
    if not match:
        return f"{value}_2"
    return f"{match.group(1)}{int(match.group(2)) + 1}"


def increment_shortname(shortname: str, exists: Callable[[str], bool]) -> str:
    """Increment at least once, then keep going while the name is taken."""

    candidate = _bump(shortname)
    while exists(candidate):
        candidate = _bump(candidate)
    return candidate


def increment_idnumber(idnumber: str, exists: Callable[[str], bool]) -> str:
    """Increment only while the idnumber is taken."""

    candidate = idnumber
    while exists(candidate):
        candidate = _bump(candidate)
    return candidate


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


__all__ = [
    "EnrolmentMethod",
    "ParsedRow",
    "generate_shortname",
    "increment_idnumber",
    "increment_shortname",
    "normalize_row",
    "parse_bool",
    "parse_row",
    "resolve_enrolments",
    "resolve_role_names",
]
