"""
Translation of raw per-key enrichment records into lookup results.
"""

from __future__ import annotations

import typing as t
from dataclasses import dataclass

TAGS_FIELD = "passivetotal.tags"


@dataclass(frozen=True)
class LookupResult:
    """
    Normalized outcome of one key lookup.

    Parameters
    ----------
    fields : tuple[tuple[str, str], ...]
        ``(field, value)`` pairs extracted from the remote record.
    """

    fields: tuple[tuple[str, str], ...] = ()

    @property
    def is_empty(self) -> bool:
        """
        Whether the lookup succeeded without finding any data.

        Returns
        -------
        bool
            ``True`` for the empty sentinel.
        """
        return not self.fields

    def values(self, field: str) -> list[str]:
        """
        Return every value recorded under ``field``, in record order.

        Parameters
        ----------
        field : str
            Field identifier.

        Returns
        -------
        list[str]
            Values of the field.
        """
        return [value for name, value in self.fields if name == field]

    @property
    def tags(self) -> list[str]:
        """Values of every field, in record order."""
        return [value for _, value in self.fields]


EMPTY_RESULT: t.Final = LookupResult()


class ResultCodec:
    """
    Decode raw enrichment records into ``LookupResult`` values.

    Parameters
    ----------
    field : str
        Field identifier paired with every extracted tag.
    """

    def __init__(self, field: str = TAGS_FIELD) -> None:
        self.field = field

    def decode(self, record: t.Mapping[str, t.Any] | None) -> LookupResult:
        """
        Decode one raw record.

        Parameters
        ----------
        record : Mapping[str, typing.Any] | None
            Raw record as returned for a single key by the bulk API.

        Returns
        -------
        LookupResult
            Result carrying the string tags, or ``EMPTY_RESULT`` when the record
            has no string tags at all.
        """
        if not record:
            return EMPTY_RESULT
        tags = record.get("tags")
        if not isinstance(tags, (list, tuple)):
            return EMPTY_RESULT
        # non-string entries are dropped, they are not decode errors
        fields = tuple((self.field, tag) for tag in tags if isinstance(tag, str))
        if not fields:
            return EMPTY_RESULT
        return LookupResult(fields=fields)
