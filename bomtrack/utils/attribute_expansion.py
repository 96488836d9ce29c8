"""Variant attribute expansion.

Walks the cartesian product of attribute values with a mixed-radix counter, so
memory stays flat regardless of how many combinations exist. The walk can be
resumed from any combination index and capped with ``limit``.

Example::

    attrs = {"size": ["S", "M"], "color": ["red", "blue", "green"]}
    list(expand_attributes(attrs, start=4))
    # [{'size': 'M', 'color': 'blue'}, {'size': 'M', 'color': 'green'}]
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Mapping, Optional, Sequence


def _normalise(attributes: Mapping[str, Sequence[Any]]) -> list[tuple[str, tuple]]:
    axes = []
    for name, values in attributes.items():
        options = tuple(values)
        axes.append((name, options))
    return axes


def combination_count(attributes: Mapping[str, Sequence[Any]]) -> int:
    total = 1
    for _, options in _normalise(attributes):
        total *= len(options)
    return total if attributes else 0


def _digits_for(index: int, radices: list[int]) -> list[int]:
    # last attribute varies fastest
    digits = [0] * len(radices)
    for position in range(len(radices) - 1, -1, -1):
        index, digits[position] = divmod(index, radices[position])
    return digits


def expand_attributes(
    attributes: Mapping[str, Sequence[Any]],
    start: int = 0,
    limit: Optional[int] = None,
) -> Iterator[Dict[str, Any]]:
    """Yield attribute combinations from index ``start``, at most ``limit`` of them."""
    if start < 0:
        raise ValueError("start must be >= 0")
    if limit is not None and limit < 0:
        raise ValueError("limit must be >= 0")
    return _walk(_normalise(attributes), start, limit)


def _walk(axes, start, limit) -> Iterator[Dict[str, Any]]:
    total = 1
    for _, options in axes:
        total *= len(options)
    if not axes or total == 0 or start >= total:
        return
    end = total if limit is None else min(total, start + limit)

    radices = [len(options) for _, options in axes]
    digits = _digits_for(start, radices)
    for _ in range(start, end):
        yield {name: options[digit] for (name, options), digit in zip(axes, digits)}
        for position in range(len(digits) - 1, -1, -1):
            digits[position] += 1
            if digits[position] < radices[position]:
                break
            digits[position] = 0
