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

import re
import sys
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier import verifierMetadata as Metadata
from Shared import verifierUtils as Util

bytecode_logger = logging.getLogger("bytecode")

ADDRESS_SIZE = 20
PUSH20_OPCODE = 0x73
# CALLER GAS, a sequence that only appears in bytecode produced by the OVM compiler
OVM_MARKER = bytes([0x33, 0x5a])

# solc >= 0.5 uses __$<34 hex chars of the library fqn hash>$__, older versions __<library name padded with _>__
LIBRARY_PLACEHOLDER_RE = re.compile(r"__\$[0-9a-fA-F]{34}\$__|__.{36}__")

# sourceName -> libName -> [{"start": .., "length": ..}]
LinkReferences = Dict[str, Dict[str, List[Dict[str, int]]]]
# AST id -> [{"start": .., "length": ..}]
ImmutableReferences = Dict[str, List[Dict[str, int]]]


class Offset(NamedTuple):
    start: int
    length: int


def hex_to_bytes(hex_bytecode: str) -> bytes:
    """
    Decodes compiler or RPC hex output. Library placeholders of unlinked bytecode become zero bytes.
    """
    stripped = Util.strip_hex_prefix(hex_bytecode.strip())
    stripped = LIBRARY_PLACEHOLDER_RE.sub("0" * ADDRESS_SIZE * 2, stripped)
    return bytes.fromhex(stripped)


def get_library_offsets(link_references: Optional[LinkReferences]) -> List[Offset]:
    if not link_references:
        return []
    return [Offset(ref["start"], ref["length"])
            for libraries in link_references.values()
            for references in libraries.values()
            for ref in references]


def get_immutable_offsets(immutable_references: Optional[ImmutableReferences]) -> List[Offset]:
    if not immutable_references:
        return []
    return [Offset(ref["start"], ref["length"])
            for references in immutable_references.values()
            for ref in references]


def get_call_protection_offsets(bytecode: bytes, reference_bytecode: bytes) -> List[Offset]:
    """
    Library runtime code starts with PUSH20 <address of the library>, the compiler leaves the address zeroed.
    """
    push_placeholder = bytes([PUSH20_OPCODE]) + bytes(ADDRESS_SIZE)
    if reference_bytecode.startswith(push_placeholder) and bytecode[:1] == bytes([PUSH20_OPCODE]):
        return [Offset(1, ADDRESS_SIZE)]
    return []


def nullify_offsets(bytecode: bytes, offsets: Iterable[Offset]) -> bytes:
    """
    @return: a copy of the bytecode of the same length, where every given range is zeroed.
    Ranges that exceed the bytecode are cut at its end.
    """
    result = bytearray(bytecode)
    for start, length in offsets:
        end = min(start + length, len(result))
        if start < end:
            result[start:end] = bytes(end - start)
    return bytes(result)


def normalize_bytecode(bytecode: bytes, offsets: Iterable[Offset] = ()) -> bytes:
    """
    Zeroes every part of the bytecode that does not depend on the source code and the compiler settings: the
    metadata trailer (including its length field) and the given ranges (immutables, library addresses, call
    protection). The result has the same length as the input, normalizing it again changes nothing.
    """
    metadata_length = Metadata.get_metadata_section_length(bytecode)
    normalized = nullify_offsets(bytecode, offsets)
    if metadata_length:
        normalized = normalized[:-metadata_length] + bytes(metadata_length)
    return normalized


def get_executable_section(bytecode: bytes) -> bytes:
    metadata_length = Metadata.get_metadata_section_length(bytecode)
    return bytecode[:len(bytecode) - metadata_length]


def get_comparison_key(bytecode: bytes, offsets: Iterable[Offset] = ()) -> bytes:
    """
    @return: the normalized executable section, two bytecodes produced by the same source and settings have equal keys
    """
    executable_length = len(get_executable_section(bytecode))
    return normalize_bytecode(bytecode, offsets)[:executable_length]


class Bytecode:
    """
    Deployed or compiled runtime bytecode, together with what its metadata trailer says about the compiler that
    produced it
    """

    def __init__(self, bytecode: Union[str, bytes]) -> None:
        self._bytecode = hex_to_bytes(bytecode) if isinstance(bytecode, str) else bytes(bytecode)
        self._version = Metadata.infer_compiler_version(self._bytecode)
        self._executable_section = get_executable_section(self._bytecode)
        # the OVM marker is searched for in the hex string, so it may also match across byte boundaries
        self._is_ovm = OVM_MARKER.hex() in self._bytecode.hex()

    def __len__(self) -> int:
        return len(self._bytecode)

    def __repr__(self) -> str:
        return f"Bytecode(length={len(self._bytecode)}, version={self._version}, ovm={self._is_ovm})"

    def get_bytes(self) -> bytes:
        return self._bytecode

    def stringify(self) -> str:
        return self._bytecode.hex()

    def get_version(self) -> Optional[str]:
        """
        @return: the compiler version from the metadata, a version range, or None when there is no metadata
        """
        return self._version

    def get_version_description(self) -> str:
        return self._version if self._version is not None else Metadata.METADATA_ABSENT_VERSION_RANGE

    def has_metadata(self) -> bool:
        return self._version is not None

    def has_version_range(self) -> bool:
        return self._version is None or self._version == Metadata.METADATA_PRESENT_SOLC_NOT_FOUND_VERSION_RANGE

    def is_ovm(self) -> bool:
        return self._is_ovm

    def get_executable_section(self) -> bytes:
        return self._executable_section

    def compare(self, compiled_deployed_bytecode: Dict[str, Any]) -> bool:
        """
        @param compiled_deployed_bytecode: the evm.deployedBytecode section of a contract in the compiler output
        @return: True when this (deployed) bytecode was produced from the compiled contract
        """
        reference = hex_to_bytes(compiled_deployed_bytecode.get("object", ""))
        reference_executable = get_executable_section(reference)

        if len(self._executable_section) != len(reference_executable) and not self._is_ovm:
            return False

        offsets = get_library_offsets(compiled_deployed_bytecode.get("linkReferences")) + \
            get_immutable_offsets(compiled_deployed_bytecode.get("immutableReferences")) + \
            get_call_protection_offsets(self._executable_section, reference)

        return get_comparison_key(self._bytecode, offsets) == get_comparison_key(reference, offsets)
