import hashlib
import logging
from typing import Annotated, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .bencode import BDict, BInteger, BList, BString, Cursor, decode_value
from .errors import (
    DecodeError,
    InfoHashComputationFailed,
    InvalidPieceData,
    MalformedInput,
    MetadataIOError,
    MissingField,
)

logger = logging.getLogger(__name__)

PIECE_HASH_LENGTH = 20
INFO_KEY_MARKER = b"4:info"

Sha1Digest = Annotated[bytes, Field(min_length=PIECE_HASH_LENGTH, max_length=PIECE_HASH_LENGTH)]


def _calculate_pieces_lengths(total_length: int, piece_length: int) -> List[int]:
    full, remainder = divmod(total_length, piece_length)
    lengths = [piece_length] * full
    if remainder:
        lengths.append(remainder)
    return lengths


class TorrentMetadata(BaseModel):
    """
    metadata extracted from a single file .torrent

    Attributes:
        announce: the tracker url
        info_hash: sha1 of the raw bencoded info dictionary
        piece_hashes: sha1 hash of each piece, in piece order
        piece_length: nominal length of each piece in bytes
        length: total content length in bytes
        name: display name
        announce_list: tiers of backup tracker urls, if the file has them
    """
    model_config = ConfigDict(frozen=True)

    announce: str
    info_hash: Sha1Digest
    piece_hashes: Tuple[Sha1Digest, ...]
    piece_length: int = Field(gt=0)
    length: int = Field(ge=0)
    name: str
    announce_list: Optional[Tuple[Tuple[str, ...], ...]] = None

    @field_serializer("info_hash", when_used="json")
    def serialize_info_hash(self, value: bytes) -> str:
        return value.hex()

    @field_serializer("piece_hashes", when_used="json")
    def serialize_piece_hashes(self, value: Tuple[bytes, ...]) -> List[str]:
        return [digest.hex() for digest in value]

    @property
    def info_hash_hex(self) -> str:
        return self.info_hash.hex()

    @property
    def piece_count(self) -> int:
        return len(self.piece_hashes)

    def piece_sizes(self) -> List[int]:
        """nominal size of every piece, the last one may be shorter"""
        return _calculate_pieces_lengths(self.length, self.piece_length)

    def piece_size(self, index: int) -> int:
        """
        size of one piece

        Raises:
            IndexError: if index is not a valid piece index
        """
        if not 0 <= index < self.piece_count:
            raise IndexError(f"piece index {index} out of range")
        return self.piece_sizes()[index]


def extract(path: str) -> TorrentMetadata:
    """
    reads and parses a .torrent file

    Args:
        path: file system path to the .torrent file

    Raises:
        MetadataIOError: if the file cannot be read
        ExtractionError: if the content is not valid torrent metadata
    """
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise MetadataIOError(f"failed to read torrent file {path}: {e}") from e

    logger.debug("read %d bytes from %s", len(data), path)
    return extract_bytes(data)


def extract_bytes(data: bytes) -> TorrentMetadata:
    """
    parses an in-memory .torrent buffer

    Raises:
        MalformedInput: if the buffer does not start with a bencoded dictionary
        MissingField: if a required field is absent or has the wrong type
        InvalidPieceData: if the pieces string is not a whole number of hashes
        InfoHashComputationFailed: if the info dictionary bytes cannot be located
    """
    cursor = Cursor(data)
    try:
        metadata = decode_value(cursor)
    except DecodeError as e:
        raise MalformedInput(f"failed to parse torrent file: {e}") from e

    if cursor.remaining():
        logger.debug("ignoring %d trailing bytes after offset %d", cursor.remaining(), cursor.offset)

    if not isinstance(metadata, BDict):
        raise MalformedInput("torrent file must be a dictionary")

    announce = _text_field(metadata, "announce")
    info = metadata.get(b"info")
    if not isinstance(info, BDict):
        raise MissingField("info", "expected a dictionary")

    name = _text_field(info, "name")
    length = _int_field(info, "length", minimum=0)
    piece_length = _int_field(info, "piece length", minimum=1)

    pieces = info.get(b"pieces")
    if not isinstance(pieces, BString):
        raise MissingField("pieces", "expected a byte string")
    piece_hashes = split_piece_hashes(pieces.value)

    info_hash = compute_info_hash(data, info)
    logger.debug("parsed %s: %d pieces, info hash %s", name, len(piece_hashes), info_hash.hex())

    return TorrentMetadata(
        announce=announce,
        info_hash=info_hash,
        piece_hashes=piece_hashes,
        piece_length=piece_length,
        length=length,
        name=name,
        announce_list=_announce_list(metadata),
    )


def split_piece_hashes(pieces: bytes) -> Tuple[bytes, ...]:
    """
    slices the concatenated piece hashes, hash i belongs to piece i

    Raises:
        InvalidPieceData: if the length is not a multiple of 20
    """
    if len(pieces) % PIECE_HASH_LENGTH != 0:
        raise InvalidPieceData(
            f"pieces length {len(pieces)} is not a multiple of {PIECE_HASH_LENGTH}")
    return tuple(pieces[i:i + PIECE_HASH_LENGTH] for i in range(0, len(pieces), PIECE_HASH_LENGTH))


def compute_info_hash(data: bytes, info: BDict) -> bytes:
    """
    sha1 over the exact raw bytes of the info dictionary

    the span recorded while decoding is checked against the '4:info' key
    marker and re-decoded from the raw buffer before hashing

    Args:
        data: the raw .torrent buffer
        info: the decoded info dictionary, spans relative to data

    Raises:
        InfoHashComputationFailed: if the marker is missing or the span does not re-decode
    """
    start, end = info.span
    if start < len(INFO_KEY_MARKER) or data[start - len(INFO_KEY_MARKER):start] != INFO_KEY_MARKER:
        raise InfoHashComputationFailed("info key marker not found before info dictionary")

    cursor = Cursor(data, start)
    try:
        value = decode_value(cursor)
    except DecodeError as e:
        raise InfoHashComputationFailed(f"failed to decode info dictionary: {e}") from e

    if not isinstance(value, BDict) or cursor.offset != end:
        raise InfoHashComputationFailed(f"info dictionary span {start}:{end} does not re-decode")

    logger.debug("info dictionary spans bytes %d:%d", start, end)
    return hashlib.sha1(data[start:end], usedforsecurity=False).digest()


def _text_field(container: BDict, field: str) -> str:
    value = container.get(field.encode())
    if not isinstance(value, BString):
        raise MissingField(field, "expected a byte string")
    try:
        return value.value.decode('utf-8')
    except UnicodeDecodeError as e:
        raise MissingField(field, "not valid utf-8 text") from e


def _int_field(container: BDict, field: str, minimum: int) -> int:
    value = container.get(field.encode())
    if not isinstance(value, BInteger):
        raise MissingField(field, "expected an integer")
    if value.value < minimum:
        raise MissingField(field, f"must be at least {minimum}, got {value.value}")
    return value.value


def _announce_list(metadata: BDict) -> Optional[Tuple[Tuple[str, ...], ...]]:
    tiers = metadata.get(b"announce-list")
    if tiers is None:
        return None

    result = []
    if isinstance(tiers, BList):
        for tier in tiers:
            if not isinstance(tier, BList):
                break
            urls = [url.value for url in tier if isinstance(url, BString)]
            if len(urls) != len(tier):
                break
            try:
                result.append(tuple(url.decode('utf-8') for url in urls))
            except UnicodeDecodeError:
                break
        else:
            return tuple(result)

    logger.debug("ignoring malformed announce-list")
    return None
