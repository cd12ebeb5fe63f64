"""Filter registration and view derivation (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence

from core.models import TEXT_FIELDS, ContactRecord

DEFAULT_FILTERS_CONFIG = [
    {"name": "phone", "field": "phone", "label": "Phones"},
    {"name": "email", "field": "email", "label": "Emails"},
]


def has_text(value: Optional[str]) -> bool:
    """Return True when the value is present and non-blank after trimming."""

    return value is not None and value.strip() != ""


@dataclass(frozen=True)
class FieldFilter:
    """Passes records whose field holds non-blank text."""

    name: str
    field: str
    label: str

    def __post_init__(self) -> None:
        if self.field not in TEXT_FIELDS:
            raise ValueError(
                f"Filter {self.name!r} must use a text field ({', '.join(TEXT_FIELDS)}), got {self.field!r}"
            )

    def matches(self, record: ContactRecord) -> bool:
        return has_text(getattr(record, self.field))


def build_filters(filters_config: Iterable[Mapping]) -> List[FieldFilter]:
    """Normalize filter configs into FieldFilter instances.

    The field defaults to the filter name and the label to the capitalized
    field, so a minimal entry only needs a name.
    """

    built: List[FieldFilter] = []
    for entry in filters_config:
        if not entry.get("enabled", True):
            continue
        name = entry["name"]
        field = entry.get("field") or name
        label = entry.get("label") or field.replace("_", " ").title()
        built.append(FieldFilter(name=name, field=field, label=label))
    return built


def apply_filters(
    records: Sequence[ContactRecord],
    filters: Iterable[FieldFilter],
    active: Mapping[str, bool],
) -> tuple[ContactRecord, ...]:
    """Return the records passing every active filter, in their original order."""

    enabled = [item for item in filters if active.get(item.name, False)]
    if not enabled:
        return tuple(records)
    return tuple(record for record in records if all(item.matches(record) for item in enabled))


class FilterEngine:
    """Registry of named filters plus the pure view derivation."""

    def __init__(self, filters: Optional[Iterable[FieldFilter]] = None) -> None:
        self._filters: dict[str, FieldFilter] = {}
        source = filters if filters is not None else build_filters(DEFAULT_FILTERS_CONFIG)
        for item in source:
            self.register(item)

    def register(self, item: FieldFilter) -> None:
        if item.name in self._filters:
            raise ValueError(f"Filter already registered: {item.name}")
        self._filters[item.name] = item

    @property
    def filters(self) -> tuple[FieldFilter, ...]:
        return tuple(self._filters.values())

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._filters)

    def default_filter_set(self) -> dict[str, bool]:
        return {name: False for name in self._filters}

    def normalize(self, filter_set: Mapping[str, bool]) -> dict[str, bool]:
        """Return a fully defined filter set; unknown names raise KeyError."""

        unknown = set(filter_set) - set(self._filters)
        if unknown:
            raise KeyError(f"Unknown filter(s): {', '.join(sorted(unknown))}")
        return {name: bool(filter_set.get(name, False)) for name in self._filters}

    def apply(
        self, records: Sequence[ContactRecord], filter_set: Mapping[str, bool]
    ) -> tuple[ContactRecord, ...]:
        return apply_filters(records, self._filters.values(), self.normalize(filter_set))
