"""Transport encodings for record sets: JSON text, export files, share links."""

import base64
import binascii
import json
import logging
import zlib
from pathlib import Path
from typing import Iterable
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from loan_sync.exceptions import DecodeError, ParseError, PayloadTooLargeError
from loan_sync.models import LoanRecord
from loan_sync.transfer.serialization import record_to_dict, records_from_list

logger = logging.getLogger(__name__)

DEFAULT_LINK_PARAM = "data"
DEFAULT_MAX_PAYLOAD_CHARS = 8000


def encode_json(records: Iterable[LoanRecord], pretty: bool = False) -> str:
    """Serialize records to a JSON array (file export and clipboard)."""
    data = [record_to_dict(record) for record in records]
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def decode_json(text: str) -> list[LoanRecord]:
    """Parse a JSON array of records.

    Decoding is all-or-nothing: one invalid entry rejects the whole payload.

    Raises
    ------
    ParseError
        If the text is not a valid record array.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid JSON: {e}") from e
    return records_from_list(data)


def encode_link_payload(
    records: Iterable[LoanRecord],
    max_chars: int = DEFAULT_MAX_PAYLOAD_CHARS,
) -> str:
    """Encode records into a compact URL-safe token.

    The token is URL-safe base64 of the zlib-compressed JSON array, without
    padding.

    Raises
    ------
    PayloadTooLargeError
        If the token would be longer than ``max_chars``.
    """
    raw = encode_json(records).encode("utf-8")
    token = base64.urlsafe_b64encode(zlib.compress(raw, 9)).decode("ascii").rstrip("=")
    if len(token) > max_chars:
        raise PayloadTooLargeError(
            f"Share payload is {len(token)} characters, limit is {max_chars}"
        )
    return token


def decode_link_payload(
    token: str,
    max_chars: int = DEFAULT_MAX_PAYLOAD_CHARS,
) -> list[LoanRecord]:
    """Decode a token produced by :func:`encode_link_payload`.

    Raises
    ------
    DecodeError
        If the token is oversized, corrupted or holds an invalid record array.
    """
    token = token.strip()
    if not token:
        raise DecodeError("Share payload is empty")
    if len(token) > max_chars:
        raise DecodeError(f"Share payload is {len(token)} characters, limit is {max_chars}")

    try:
        compressed = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4))
        text = zlib.decompress(compressed).decode("utf-8")
    except (binascii.Error, zlib.error, UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"Share payload is corrupted: {e}") from e

    try:
        return decode_json(text)
    except DecodeError:
        raise
    except ParseError as e:
        raise DecodeError(str(e)) from e


def build_share_url(
    base_url: str,
    records: Iterable[LoanRecord],
    param: str = DEFAULT_LINK_PARAM,
    max_chars: int = DEFAULT_MAX_PAYLOAD_CHARS,
) -> str:
    """Return ``base_url`` with the encoded records in query parameter ``param``."""
    token = encode_link_payload(records, max_chars=max_chars)
    parts = urlsplit(base_url)
    query = parse_qs(parts.query, keep_blank_values=True)
    query[param] = [token]
    return urlunsplit(parts._replace(query=urlencode(query, doseq=True)))


def extract_shared_records(
    url: str,
    param: str = DEFAULT_LINK_PARAM,
    max_chars: int = DEFAULT_MAX_PAYLOAD_CHARS,
) -> list[LoanRecord] | None:
    """Decode the records carried by a share link.

    Returns
    -------
    list[LoanRecord] | None
        Shared records, or None when the link carries no payload.

    Raises
    ------
    DecodeError
        If the payload is present but invalid.
    """
    values = parse_qs(urlsplit(url).query).get(param)
    if not values:
        return None
    return decode_link_payload(values[0], max_chars=max_chars)


def write_export_file(path: str | Path, records: Iterable[LoanRecord], pretty: bool = True) -> int:
    """Write records to a JSON export file and return how many were written."""
    records = list(records)
    file_path = Path(path)
    file_path.write_text(encode_json(records, pretty=pretty), encoding="utf-8")
    logger.info("Exported %d records to %s", len(records), file_path)
    return len(records)


def read_export_file(path: str | Path) -> list[LoanRecord]:
    """Read records from a JSON export file.

    Raises
    ------
    ParseError
        If the file cannot be read or does not hold a valid record array.
    """
    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"Cannot read {file_path}: {e}") from e
    return decode_json(text)
