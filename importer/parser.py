"""
Streaming parser for the exercise library dataset

The upstream dataset is published as a JSON array of exercise objects. JSON
Lines (one object per line) is also accepted. The format is chosen from the
first non-whitespace character of the input.

Parsing is incremental: bytes are decoded and turned into records as they
arrive, so memory use is bounded by the size of a single record rather than
the size of the dataset. A record which cannot be normalized is reported as a
RecordError in its place in the output and parsing continues. Only input which
is not one of the accepted container formats raises FatalParseFailure.
"""

import codecs
import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Union

from .exceptions import FatalParseFailure, RecordError

#: Longest single record (in characters) we are prepared to buffer
MAX_RECORD_LENGTH = 1024 * 1024

#: Optional string attributes, keyed by their name in the dataset
STRING_FIELDS = {
    "force": "force",
    "level": "level",
    "mechanic": "mechanic",
    "equipment": "equipment",
    "category": "category",
}

#: List-of-strings attributes, keyed by their name in the dataset
LIST_FIELDS = {
    "primaryMuscles": "primary_muscles",
    "secondaryMuscles": "secondary_muscles",
    "instructions": "instructions",
    "images": "images",
}

JSON_WHITESPACE = " \t\n\r"

#: Characters which may follow a complete number inside an array
NUMBER_TERMINATORS = JSON_WHITESPACE + ",]"


@dataclass(frozen=True)
class ExerciseRecord:
    """
    A normalized exercise from the dataset. ``position`` is the 1-based
    position of the record in the dataset.
    """

    external_id: str
    name: str
    position: int = 0
    force: str = ""
    level: str = ""
    mechanic: str = ""
    equipment: str = ""
    category: str = ""
    primary_muscles: list[str] = field(default_factory=list)
    secondary_muscles: list[str] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)

    def attributes(self) -> dict[str, Any]:
        """The imported attributes, keyed by Exercise field name"""
        values = {"name": self.name}
        for attribute in STRING_FIELDS.values():
            values[attribute] = getattr(self, attribute)
        for attribute in LIST_FIELDS.values():
            values[attribute] = list(getattr(self, attribute))
        return values


ParseResult = Union[ExerciseRecord, RecordError]


def parse_exercises(chunks: Iterable[bytes]) -> Iterator[ParseResult]:
    """
    Lazily parse an iterable of byte chunks into exercise records.

    Yields an ExerciseRecord for every valid record and a RecordError for
    every record which is malformed or repeats an external id already seen in
    this dataset. Raises FatalParseFailure if the input is not a JSON array or
    JSON Lines document.
    """
    seen_ids = set()

    for position, value in _iter_values(_iter_text(chunks)):
        if isinstance(value, RecordError):
            yield value
            continue

        try:
            record = normalize_record(value, position)
        except RecordError as exc:
            yield exc
            continue

        if record.external_id in seen_ids:
            yield RecordError(
                position,
                f"Duplicate id {record.external_id!r} in dataset",
                external_id=record.external_id,
            )
            continue

        seen_ids.add(record.external_id)
        yield record


def normalize_record(value: Any, position: int) -> ExerciseRecord:
    """
    Turn one decoded dataset entry into an ExerciseRecord, raising
    RecordError if it is not usable.
    """

    if not isinstance(value, dict):
        raise RecordError(
            position, f"Expected an object, found {type(value).__name__}"
        )

    raw_id = value.get("id")
    if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)):
        raise RecordError(position, "Missing or invalid id")
    external_id = str(raw_id).strip()
    if not external_id:
        raise RecordError(position, "Missing or invalid id")

    name = value.get("name")
    if not isinstance(name, str) or not name.strip():
        raise RecordError(position, "Missing name", external_id=external_id)

    attributes = {"name": name.strip()}

    for source_key, attribute in STRING_FIELDS.items():
        raw = value.get(source_key)
        if raw is None:
            attributes[attribute] = ""
        elif isinstance(raw, str):
            attributes[attribute] = raw.strip()
        else:
            raise RecordError(
                position, f"{source_key} must be a string", external_id=external_id
            )

    for source_key, attribute in LIST_FIELDS.items():
        raw = value.get(source_key)
        if raw is None:
            attributes[attribute] = []
        elif isinstance(raw, list) and all(isinstance(i, str) for i in raw):
            attributes[attribute] = [i.strip() for i in raw]
        else:
            raise RecordError(
                position,
                f"{source_key} must be a list of strings",
                external_id=external_id,
            )

    return ExerciseRecord(external_id=external_id, position=position, **attributes)


def _iter_text(chunks: Iterable[bytes]) -> Iterator[str]:
    # utf-8-sig drops a leading byte order mark if there is one
    decoder = codecs.getincrementaldecoder("utf-8-sig")()
    try:
        for chunk in chunks:
            text = decoder.decode(chunk)
            if text:
                yield text
        text = decoder.decode(b"", final=True)
        if text:
            yield text
    except UnicodeDecodeError as exc:
        raise FatalParseFailure(f"Dataset is not valid UTF-8: {exc}") from exc


def _iter_values(text_chunks: Iterator[str]):
    buffer = ""
    for text in text_chunks:
        buffer += text
        stripped = buffer.lstrip(JSON_WHITESPACE)
        if stripped:
            break
        buffer = ""
    else:
        raise FatalParseFailure("Dataset is empty")

    if stripped[0] == "[":
        return _iter_array(stripped, text_chunks)
    elif stripped[0] == "{":
        return _iter_lines(stripped, text_chunks)
    else:
        raise FatalParseFailure(
            "Dataset is neither a JSON array nor JSON Lines "
            f"(starts with {stripped[0]!r})"
        )


def _iter_array(buffer: str, text_chunks: Iterator[str]):
    """
    Yield (position, value) for each element of a JSON array, reading more
    text as needed. The array must be the only value in the input.

    Element values are decoded with JSONDecoder.raw_decode. A decode error
    while more input is available may just mean the element is incomplete,
    so we read more and retry; once the input is exhausted it is fatal. A
    syntax error inside the array leaves no reliable way to find the next
    element, so unlike a malformed JSON Lines line it fails the whole parse.
    """
    decoder = json.JSONDecoder()
    pos = 1
    position = 0
    exhausted = False
    # One of "first" (just after the opening bracket), "value" (after a comma)
    # or "separator" (after an element)
    state = "first"

    def read_more():
        nonlocal buffer, pos, exhausted
        if exhausted:
            return False
        text = next(text_chunks, None)
        if text is None:
            exhausted = True
            return False
        buffer = buffer[pos:] + text
        pos = 0
        return True

    while True:
        while pos < len(buffer) and buffer[pos] in JSON_WHITESPACE:
            pos += 1
        if pos >= len(buffer):
            if not read_more():
                raise FatalParseFailure("Dataset ended inside the JSON array")
            continue

        char = buffer[pos]

        if state == "separator":
            if char == ",":
                pos += 1
                state = "value"
                continue
            elif char == "]":
                pos += 1
                break
            raise FatalParseFailure(
                f"Expected ',' or ']' after record {position}, found {char!r}"
            )

        if char == "]":
            if state == "first":
                pos += 1
                break
            raise FatalParseFailure(f"Trailing comma after record {position}")

        try:
            value, end = decoder.raw_decode(buffer, pos)
        except json.JSONDecodeError as exc:
            if len(buffer) - pos > MAX_RECORD_LENGTH:
                raise FatalParseFailure(
                    f"Record {position + 1} is longer than {MAX_RECORD_LENGTH} "
                    "characters"
                ) from exc
            if read_more():
                continue
            raise FatalParseFailure(
                f"Invalid JSON in record {position + 1}: {exc.msg}"
            ) from exc

        if _may_continue(value, buffer, end):
            if len(buffer) - pos > MAX_RECORD_LENGTH:
                raise FatalParseFailure(
                    f"Record {position + 1} is longer than {MAX_RECORD_LENGTH} "
                    "characters"
                )
            if read_more():
                continue

        position += 1
        pos = end
        state = "separator"
        yield position, value

    # Nothing but whitespace may follow the closing bracket
    while True:
        if buffer[pos:].strip(JSON_WHITESPACE):
            raise FatalParseFailure("Unexpected data after the end of the JSON array")
        if not read_more():
            return


def _iter_lines(buffer: str, text_chunks: Iterator[str]):
    """
    Yield (position, value) for each non-blank line of a JSON Lines document.
    A line which is not valid JSON is yielded as a RecordError.
    """
    position = 0

    def decode_line(line):
        nonlocal position
        if not line.strip(JSON_WHITESPACE):
            return None
        position += 1
        try:
            return position, json.loads(line)
        except json.JSONDecodeError as exc:
            return position, RecordError(position, f"Invalid JSON: {exc.msg}")

    while True:
        *lines, buffer = buffer.split("\n")
        for line in lines:
            result = decode_line(line)
            if result is not None:
                yield result

        if len(buffer) > MAX_RECORD_LENGTH:
            raise FatalParseFailure(
                f"Line {position + 1} is longer than {MAX_RECORD_LENGTH} characters"
            )

        text = next(text_chunks, None)
        if text is None:
            break
        buffer += text

    result = decode_line(buffer)
    if result is not None:
        yield result


def _may_continue(value, buffer, end):
    """
    Whether the value decoded up to ``end`` could be the start of a longer
    value split by a chunk boundary, such as ``1`` from ``1.`` | ``25``.
    """
    if end == len(buffer):
        return True
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return buffer[end] not in NUMBER_TERMINATORS
