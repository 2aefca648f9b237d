import argparse
import logging
import sys
from typing import List, Optional

from .errors import ExtractionError
from .torrent_file import TorrentMetadata, extract

logger = logging.getLogger(__name__)


def format_metadata(metadata: TorrentMetadata) -> str:
    """human readable summary of the extracted fields"""
    return "\n".join([
        f"Name: {metadata.name}",
        f"Announce URL: {metadata.announce}",
        f"File Size: {metadata.length} bytes",
        f"Piece Length: {metadata.piece_length} bytes",
        f"Number of Pieces: {metadata.piece_count}",
        f"Info Hash: {metadata.info_hash_hex}",
    ])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="minitorrent", description="show the metadata of a .torrent file")
    parser.add_argument("torrent", help="path to the .torrent file")
    parser.add_argument("--json", action="store_true", help="print the metadata as json")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(asctime)s - %(levelname)s - %(message)s')

    try:
        metadata = extract(args.torrent)
    except ExtractionError as e:
        logger.debug("extraction failed", exc_info=True)
        print(f"Error parsing torrent file: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(metadata.model_dump_json(indent=2))
    else:
        print(format_metadata(metadata))
    return 0


if __name__ == "__main__":
    sys.exit(main())
