"""Ad Ops Hub - Column References.

A logical field (client, platform, ...) points at a physical sheet column by
header name, by column letter, or by 1-based index. References are resolved
once against the header row when a table is built.
"""

import re
from typing import Dict, List, Literal, Sequence, Union

from pydantic import BaseModel, Field

from adops.core.errors import UnresolvedColumnError

_LETTERS = re.compile(r"^[A-Z]{1,3}$")
NAME_PREFIX = "name:"


class ByName(BaseModel):
    """Header text, matched exactly (case-sensitive)."""

    kind: Literal["name"] = "name"
    name: str

    def __str__(self) -> str:
        return f'header "{self.name}"'


class ByLetter(BaseModel):
    """Spreadsheet column letter, 'A' = 1."""

    kind: Literal["letter"] = "letter"
    letter: str

    def __str__(self) -> str:
        return f"column {self.letter}"


class ByIndex(BaseModel):
    """1-based column number."""

    kind: Literal["index"] = "index"
    index: int

    def __str__(self) -> str:
        return f"column #{self.index}"


ColumnRef = Union[ByName, ByLetter, ByIndex]


class ColumnMapping(BaseModel):
    """Field name -> column reference."""

    refs: Dict[str, ColumnRef] = Field(default_factory=dict)

    @classmethod
    def from_config(cls, raw: Dict[str, Union[int, str]]) -> "ColumnMapping":
        return cls(refs={field: parse_column_ref(value) for field, value in raw.items()})


def parse_column_ref(value: Union[int, str, ColumnRef]) -> ColumnRef:
    """Build a reference from a config value.

    ints are indexes, 1-3 uppercase letters are column letters, strings
    prefixed with ``name:`` (or anything else) are header names.
    """
    if isinstance(value, (ByName, ByLetter, ByIndex)):
        return value
    if isinstance(value, bool):
        raise TypeError(f"Invalid column reference: {value!r}")
    if isinstance(value, int):
        return ByIndex(index=value)
    if value.startswith(NAME_PREFIX):
        return ByName(name=value[len(NAME_PREFIX):])
    if value.isdigit():
        return ByIndex(index=int(value))
    if _LETTERS.match(value):
        return ByLetter(letter=value)
    return ByName(name=value)


def letter_to_index(letter: str) -> int:
    """Base-26 column letter to 1-based index: A -> 1, Z -> 26, AA -> 27."""
    index = 0
    for char in letter.upper():
        if not "A" <= char <= "Z":
            raise ValueError(f"Invalid column letter: {letter!r}")
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def index_to_letter(index: int) -> str:
    """1-based index to column letter: 1 -> A, 43 -> AQ."""
    if index < 1:
        raise ValueError(f"Column index must be >= 1, got {index}")
    letters: List[str] = []
    while index:
        index, rem = divmod(index - 1, 26)
        letters.append(chr(ord("A") + rem))
    return "".join(reversed(letters))


def positional_index(field: str, ref: Union[ByLetter, ByIndex]) -> int:
    """1-based index of a letter or index reference, without a range check."""
    if isinstance(ref, ByLetter):
        try:
            return letter_to_index(ref.letter)
        except ValueError as e:
            raise UnresolvedColumnError(field, str(ref), str(e)) from e
    if ref.index < 1:
        raise UnresolvedColumnError(field, str(ref), "column indexes start at 1")
    return ref.index


def resolve_column(
    field: str, ref: ColumnRef, header: Sequence[object], width: int
) -> int:
    """Resolve a reference to a 1-based column within ``width`` columns."""
    if isinstance(ref, ByName):
        for position, cell in enumerate(header[:width], 1):
            if cell == ref.name:
                return position
        raise UnresolvedColumnError(field, str(ref), "header not found")

    index = positional_index(field, ref)
    if index > width:
        raise UnresolvedColumnError(
            field, str(ref), f"outside source range 1..{width}"
        )
    return index


def resolve_mapping(
    mapping: ColumnMapping, header: Sequence[object], width: int
) -> Dict[str, int]:
    """Resolve every reference in a mapping. Fails on the first bad one."""
    return {
        field: resolve_column(field, ref, header, width)
        for field, ref in mapping.refs.items()
    }
