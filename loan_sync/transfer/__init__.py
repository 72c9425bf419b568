"""Encodings for moving record sets between devices."""

from loan_sync.transfer.codec import (
    build_share_url,
    decode_json,
    decode_link_payload,
    encode_json,
    encode_link_payload,
    extract_shared_records,
    read_export_file,
    write_export_file,
)
from loan_sync.transfer.serialization import record_from_dict, record_to_dict

__all__ = [
    "build_share_url",
    "decode_json",
    "decode_link_payload",
    "encode_json",
    "encode_link_payload",
    "extract_shared_records",
    "read_export_file",
    "record_from_dict",
    "record_to_dict",
    "write_export_file",
]
