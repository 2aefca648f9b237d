from .bencode import BDict, BInteger, BList, BString, Cursor, DecodedValue, decode, decode_value
from .errors import DecodeError, ExtractionError, MinitorrentError
from .torrent_file import TorrentMetadata, extract, extract_bytes

__all__ = [
    "BDict",
    "BInteger",
    "BList",
    "BString",
    "Cursor",
    "DecodedValue",
    "DecodeError",
    "ExtractionError",
    "MinitorrentError",
    "TorrentMetadata",
    "decode",
    "decode_value",
    "extract",
    "extract_bytes",
]
