"""
recursive descent bencode decoder

decoded values keep the byte span they occupied in the input so callers can
re-slice the exact raw bytes of any sub-structure (the info hash needs this)
"""
import re
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .errors import (
    DuplicateKey,
    InvalidKey,
    InvalidTag,
    LengthOutOfBounds,
    MalformedInteger,
    MalformedLength,
    NestingTooDeep,
    TrailingData,
    UnexpectedEnd,
    UnsortedKeys,
)

MAX_DEPTH = 256  # nested lists / dicts, stays well below the interpreter recursion limit

DIGITS = b"0123456789"
COLON = ord(":")
INT_TAG = ord("i")
LIST_TAG = ord("l")
DICT_TAG = ord("d")
END = ord("e")

_INTEGER = re.compile(rb"[+-]?[0-9]+")
_CANONICAL_INTEGER = re.compile(rb"0|-?[1-9][0-9]*")

PythonValue = Union[int, bytes, list, dict]


class Cursor:
    """
    read position over a bencoded buffer

    Attributes:
        data: the buffer being decoded (not copied)
        offset: index of the next unread byte
    """

    def __init__(self, data: bytes, offset: int = 0):
        self.data: bytes = data
        self.offset: int = offset

    def peek(self) -> Optional[int]:
        """byte at the current offset, None at the end of the buffer"""
        if self.offset >= len(self.data):
            return None
        return self.data[self.offset]

    def remaining(self) -> int:
        return len(self.data) - self.offset


class DecodedValue:
    """
    base class for decoded bencode values

    Attributes:
        value: the decoded payload
        start: offset of the first byte of the value in the input
        end: offset just past the last byte of the value
    """

    def __init__(self, value, start: int, end: int):
        self.value = value
        self.start: int = start
        self.end: int = end

    @property
    def span(self) -> Tuple[int, int]:
        return self.start, self.end

    def to_python(self) -> PythonValue:
        """converts to plain int / bytes / list / dict values"""
        return self.value

    def __eq__(self, other):
        # spans are positional metadata, equality is structural
        if type(self) is not type(other):
            return NotImplemented
        return self.value == other.value

    def __repr__(self):
        return f"{type(self).__name__}({self.value!r})"


class BInteger(DecodedValue):
    value: int


class BString(DecodedValue):
    value: bytes


class BList(DecodedValue):
    value: List[DecodedValue]

    def to_python(self) -> list:
        return [item.to_python() for item in self.value]

    def __iter__(self) -> Iterator[DecodedValue]:
        return iter(self.value)

    def __len__(self):
        return len(self.value)

    def __getitem__(self, index: int) -> DecodedValue:
        return self.value[index]


class BDict(DecodedValue):
    value: Dict[bytes, DecodedValue]

    def to_python(self) -> dict:
        return {key: item.to_python() for key, item in self.value.items()}

    def get(self, key: bytes) -> Optional[DecodedValue]:
        return self.value.get(key)

    def keys(self):
        return self.value.keys()

    def __contains__(self, key: bytes) -> bool:
        return key in self.value

    def __getitem__(self, key: bytes) -> DecodedValue:
        return self.value[key]

    def __len__(self):
        return len(self.value)


def decode_value(cursor: Cursor, strict: bool = False, max_depth: int = MAX_DEPTH) -> DecodedValue:
    """
    decodes one value at the cursor and advances past it

    trailing bytes after the value are left unread

    Args:
        cursor: position to decode from
        strict: reject non canonical encodings (leading zeros, -0, duplicate or unsorted keys)
        max_depth: maximum nesting of lists and dictionaries

    Raises:
        DecodeError: on any syntax violation, with the offset where it was found
    """
    return _decode(cursor, strict, max_depth, 0)


def decode(data: bytes, strict: bool = False, max_depth: int = MAX_DEPTH) -> DecodedValue:
    """
    decodes a buffer holding exactly one bencoded value

    Raises:
        TrailingData: if bytes remain after the value
        DecodeError: on any other syntax violation
    """
    cursor = Cursor(data)
    value = decode_value(cursor, strict=strict, max_depth=max_depth)
    if cursor.remaining():
        raise TrailingData(f"{cursor.remaining()} bytes of extra data after value", cursor.offset)
    return value


def _decode(cursor: Cursor, strict: bool, max_depth: int, depth: int) -> DecodedValue:
    tag = cursor.peek()
    if tag is None:
        raise UnexpectedEnd("unexpected end of data", cursor.offset)
    if tag in DIGITS:
        return _decode_string(cursor, strict)
    if tag == INT_TAG:
        return _decode_integer(cursor, strict)
    if tag == LIST_TAG:
        return _decode_list(cursor, strict, max_depth, depth)
    if tag == DICT_TAG:
        return _decode_dict(cursor, strict, max_depth, depth)
    raise InvalidTag(f"invalid bencode tag {bytes([tag])!r}", cursor.offset)


def _decode_string(cursor: Cursor, strict: bool) -> BString:
    data = cursor.data
    start = cursor.offset

    colon = start
    while colon < len(data) and data[colon] != COLON:
        if data[colon] not in DIGITS:
            raise MalformedLength(f"invalid string length character {data[colon:colon + 1]!r}", colon)
        colon += 1

    if colon >= len(data):
        raise UnexpectedEnd("unexpected end of data while parsing string length", colon)

    digits = data[start:colon]
    if not digits:
        raise MalformedLength("empty string length", start)
    if strict and len(digits) > 1 and digits[0] == DIGITS[0]:
        raise MalformedLength(f"leading zero in string length {bytes(digits)!r}", start)

    begin = colon + 1
    significant = digits.lstrip(b"0") or b"0"
    # more significant digits than the remaining size has cannot fit
    if len(significant) > len(str(len(data) - begin)):
        raise LengthOutOfBounds(f"string length of {len(digits)} digits exceeds data bounds", start)
    end = begin + int(significant)
    if end > len(data):
        raise LengthOutOfBounds(f"string length {int(significant)} exceeds data bounds", start)

    cursor.offset = end
    return BString(bytes(data[begin:end]), start, end)


def _decode_integer(cursor: Cursor, strict: bool) -> BInteger:
    data = cursor.data
    start = cursor.offset

    end = data.find(b"e", start + 1)
    if end == -1:
        raise UnexpectedEnd("unexpected end of data while parsing integer", len(data))

    text = data[start + 1:end]
    pattern = _CANONICAL_INTEGER if strict else _INTEGER
    if not pattern.fullmatch(text):
        raise MalformedInteger(f"invalid integer {bytes(text)!r}", start)

    try:
        number = int(text)
    except ValueError as e:
        raise MalformedInteger(f"integer of {len(text)} digits cannot be converted", start) from e

    cursor.offset = end + 1
    return BInteger(number, start, cursor.offset)


def _enter(cursor: Cursor, max_depth: int, depth: int):
    if depth >= max_depth:
        raise NestingTooDeep(f"nesting deeper than {max_depth} levels", cursor.offset)
    cursor.offset += 1  # skip 'l' / 'd'


def _decode_list(cursor: Cursor, strict: bool, max_depth: int, depth: int) -> BList:
    start = cursor.offset
    _enter(cursor, max_depth, depth)

    items: List[DecodedValue] = []
    while True:
        tag = cursor.peek()
        if tag is None:
            raise UnexpectedEnd("unexpected end of data while parsing list", cursor.offset)
        if tag == END:
            break
        items.append(_decode(cursor, strict, max_depth, depth + 1))

    cursor.offset += 1  # skip 'e'
    return BList(items, start, cursor.offset)


def _decode_dict(cursor: Cursor, strict: bool, max_depth: int, depth: int) -> BDict:
    start = cursor.offset
    _enter(cursor, max_depth, depth)

    items: Dict[bytes, DecodedValue] = {}
    previous: Optional[bytes] = None
    while True:
        tag = cursor.peek()
        if tag is None:
            raise UnexpectedEnd("unexpected end of data while parsing dictionary", cursor.offset)
        if tag == END:
            break
        if tag not in DIGITS:
            raise InvalidKey(f"dictionary key must be a byte string, found {bytes([tag])!r}", cursor.offset)

        key_offset = cursor.offset
        try:
            key = _decode_string(cursor, strict).value
        except MalformedLength as e:
            raise InvalidKey(f"invalid dictionary key: {e}", key_offset) from e
        if strict:
            if key in items:
                raise DuplicateKey(f"duplicate dictionary key {key!r}", key_offset)
            if previous is not None and key < previous:
                raise UnsortedKeys(f"dictionary key {key!r} out of order", key_offset)
        previous = key

        items[key] = _decode(cursor, strict, max_depth, depth + 1)

    cursor.offset += 1  # skip 'e'
    return BDict(items, start, cursor.offset)
