"""
Line codec for snapshot text.

Each non-blank line holds one record as comma-separated `key=value`
pairs, e.g. `id=1,email=a@x.com,name=A`. Keys may appear in any order;
`encode` always emits `id,email,name`.
"""

import re
from typing import Dict, Iterable, List, Optional, Union

from .exceptions import FormatError
from .models import Record


RECOGNIZED_KEYS = ("id", "email", "name")

_INTEGER_PATTERN = re.compile(r"^[+-]?[0-9]+$")

# Only CR, LF and CRLF end a line; other Unicode breaks stay inside values
_LINE_BREAK = re.compile(r"\r\n|\r|\n")

# Characters that would split a value across pairs or lines
_FORBIDDEN_VALUE_CHARS = (",", "\n", "\r")


def decode(text: str) -> List[Record]:
    """
    Decode snapshot text into an ordered list of records.

    Blank and whitespace-only lines are skipped. Ids are not checked for
    uniqueness.

    Args:
        text: Snapshot text

    Returns:
        Records in line order

    Raises:
        FormatError: If a line is missing a field or has a non-integer id
    """
    records = []
    for line_number, line in enumerate(_LINE_BREAK.split(text), start=1):
        if not line.strip():
            continue
        records.append(_decode_line(line, line_number))
    return records


def encode(records: Iterable[Record]) -> str:
    """Encode records as snapshot text, one line per record."""
    return "".join(
        f"id={record.id},email={record.email},name={record.name}\n"
        for record in records
    )


def decode_upload(raw: Union[bytes, str], encoding: str = "utf-8") -> str:
    """
    Turn uploaded snapshot content into text.

    Raises:
        FormatError: If the upload is empty or cannot be decoded
    """
    if raw is None or len(raw) == 0:
        raise FormatError("Snapshot content is empty")

    if isinstance(raw, str):
        return raw

    try:
        return raw.decode(encoding)
    except UnicodeDecodeError as e:
        raise FormatError(f"Snapshot content is not valid {encoding}: {e}") from e


def validate_field(field_name: str, value: Optional[str]) -> None:
    """
    Check that a field value survives an encode/decode round-trip.

    None is accepted (an absent optional field). Leading and trailing
    whitespace is rejected because decode trims values.

    Raises:
        FormatError: If the value contains a separator character or has
            surrounding whitespace
    """
    if value is None:
        return
    for char in _FORBIDDEN_VALUE_CHARS:
        if char in value:
            raise FormatError(
                f"Field '{field_name}' cannot contain {char!r}: {value!r}"
            )
    if value != value.strip():
        raise FormatError(
            f"Field '{field_name}' cannot start or end with whitespace: {value!r}"
        )


def _decode_line(line: str, line_number: int) -> Record:
    """Decode a single non-blank line."""
    fields: Dict[str, str] = {}
    for pair in line.split(","):
        parts = pair.split("=", 1)
        if len(parts) != 2:
            continue
        key = parts[0].strip()
        if key in RECOGNIZED_KEYS:
            fields[key] = parts[1].strip()

    raw_id = fields.get("id")
    if raw_id is None or not _INTEGER_PATTERN.match(raw_id):
        raise FormatError(
            f"Invalid record format on line {line_number}: {line}",
            line_number=line_number,
            line=line,
        )

    for key in ("email", "name"):
        if key not in fields:
            raise FormatError(
                f"Missing '{key}' on line {line_number}: {line}",
                line_number=line_number,
                line=line,
            )

    return Record(id=int(raw_id), email=fields["email"], name=fields["name"])
