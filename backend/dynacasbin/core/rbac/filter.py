from collections.abc import Iterable, Sequence

from dynacasbin.models import CasbinRule, FIELD_COUNT


def build_pattern(field_index: int, field_values: Sequence[str]) -> list[str]:
    """
    Spread ``field_values`` over the six field positions starting at
    ``field_index``. Positions outside the window, values that fall outside
    0..5 and empty values all become ``""``, which matches anything.
    """
    pattern = [""] * FIELD_COUNT
    for offset, value in enumerate(field_values):
        position = field_index + offset
        if 0 <= position < FIELD_COUNT:
            pattern[position] = value or ""
    return pattern


def _matches_pattern(record: CasbinRule, ptype: str, pattern: list[str]) -> bool:
    if record.ptype != ptype:
        return False
    return all(
        expected == "" or expected == actual
        for expected, actual in zip(pattern, record.fields)
    )


def matches_filter(
    record: CasbinRule, ptype: str, field_index: int, field_values: Sequence[str]
) -> bool:
    return _matches_pattern(record, ptype, build_pattern(field_index, field_values))


def filter_rules(
    records: Iterable[CasbinRule],
    ptype: str,
    field_index: int,
    field_values: Sequence[str],
) -> list[CasbinRule]:
    pattern = build_pattern(field_index, field_values)
    return [r for r in records if _matches_pattern(r, ptype, pattern)]
