#     The Certora Prover
#     Copyright (C) 2025  Certora Ltd.
#
#     This program is free software: you can redistribute it and/or modify
#     it under the terms of the GNU General Public License as published by
#     the Free Software Foundation, version 3 of the License.
#
#     This program is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU General Public License for more details.
#
#     You should have received a copy of the GNU General Public License
#     along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
solc appends a CBOR encoded map to the runtime bytecode of every contract it compiles (since 0.4.7):

    <executable code> <CBOR map> <2 bytes big endian length of the CBOR map>

The map holds the hash of the contract metadata file and, since 0.5.9, the compiler version under the "solc" key.
See https://docs.soliditylang.org/en/latest/metadata.html#encoding-of-the-metadata-hash-in-the-bytecode
"""

import logging
from typing import Any, Dict, Optional

import cbor2

bytecode_logger = logging.getLogger("bytecode")

METADATA_LENGTH_FIELD_SIZE = 2
SOLC_VERSION_FIELD_SIZE = 3
SOLC_VERSION_KEY = "solc"
# solc versions that emit a metadata trailer without the compiler version
METADATA_PRESENT_SOLC_NOT_FOUND_VERSION_RANGE = "0.4.7 - 0.5.8"
# solc versions that emit no metadata trailer at all, only used when reporting errors
METADATA_ABSENT_VERSION_RANGE = "<0.4.7"


def decode_solc_metadata(bytecode: bytes) -> Optional[Dict[str, Any]]:
    """
    @param bytecode: runtime bytecode
    @return: the decoded CBOR metadata map, or None if the bytecode does not end with a metadata trailer
    """
    if len(bytecode) <= METADATA_LENGTH_FIELD_SIZE:
        return None
    metadata_length = int.from_bytes(bytecode[-METADATA_LENGTH_FIELD_SIZE:], "big")
    if metadata_length == 0 or metadata_length + METADATA_LENGTH_FIELD_SIZE > len(bytecode):
        return None

    payload = bytecode[-metadata_length - METADATA_LENGTH_FIELD_SIZE:-METADATA_LENGTH_FIELD_SIZE]
    try:
        decoded = cbor2.loads(payload)
    except (cbor2.CBORDecodeError, ValueError, EOFError) as e:
        bytecode_logger.debug(f"the last {metadata_length} bytes of the bytecode are not a CBOR map: {e}")
        return None

    if not isinstance(decoded, dict):
        bytecode_logger.debug(f"the metadata trailer decodes to {type(decoded).__name__}, not to a map")
        return None
    return decoded


def get_metadata_section_length(bytecode: bytes) -> int:
    """
    @return: the length of the metadata trailer, including its length field. 0 when there is no trailer
    """
    if decode_solc_metadata(bytecode) is None:
        return 0
    return int.from_bytes(bytecode[-METADATA_LENGTH_FIELD_SIZE:], "big") + METADATA_LENGTH_FIELD_SIZE


def infer_compiler_version(bytecode: bytes) -> Optional[str]:
    """
    @return: the exact compiler version ("0.8.19"), a version range when the metadata does not name the compiler,
             or None for bytecode without metadata
    """
    metadata = decode_solc_metadata(bytecode)
    if metadata is None:
        return None

    solc_version = metadata.get(SOLC_VERSION_KEY)
    if isinstance(solc_version, bytes) and len(solc_version) == SOLC_VERSION_FIELD_SIZE:
        major, minor, patch = solc_version
        return f"{major}.{minor}.{patch}"
    if isinstance(solc_version, str) and solc_version:
        # prerelease builds store the full version string, e.g. 0.8.20-nightly.2023.4.18+commit.3c1a4ad1
        return solc_version

    bytecode_logger.debug(f"the metadata has no usable '{SOLC_VERSION_KEY}' entry, keys are {list(metadata.keys())}")
    return METADATA_PRESENT_SOLC_NOT_FOUND_VERSION_RANGE
