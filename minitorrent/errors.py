from typing import Optional


class MinitorrentError(Exception):
    """base class for every error raised by minitorrent"""


class DecodeError(MinitorrentError, ValueError):
    """
    bencode syntax violation

    Attributes:
        offset: byte offset in the input where the problem was detected
    """

    def __init__(self, message: str, offset: int):
        super().__init__(f"{message} at offset {offset}")
        self.offset = offset


class InvalidTag(DecodeError):
    pass


class MalformedLength(DecodeError):
    pass


class UnexpectedEnd(DecodeError):
    pass


class LengthOutOfBounds(UnexpectedEnd):
    pass


class MalformedInteger(DecodeError):
    pass


class InvalidKey(DecodeError):
    pass


class TrailingData(DecodeError):
    pass


class NestingTooDeep(DecodeError):
    pass


class DuplicateKey(DecodeError):
    pass


class UnsortedKeys(DecodeError):
    pass


class ExtractionError(MinitorrentError):
    """torrent metadata could not be extracted"""


class MetadataIOError(ExtractionError):
    """the metadata file could not be read"""


class MalformedInput(ExtractionError):
    """the file is not a bencoded dictionary"""


class MissingField(ExtractionError):
    """
    a required field is absent, has the wrong type, or is out of range

    Attributes:
        field: name of the offending key
    """

    def __init__(self, field: str, detail: Optional[str] = None):
        message = f"missing or invalid field '{field}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.field = field


class InvalidPieceData(ExtractionError):
    pass


class InfoHashComputationFailed(ExtractionError):
    pass
