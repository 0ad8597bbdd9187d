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
Resolution of the external libraries a contract is linked against.

Library addresses come from two places: the addresses given by the user and the addresses found in the deployed
bytecode at the offsets of the link references. Libraries that are only called from the constructor have no link
reference in the runtime bytecode, so their addresses cannot be detected and must be given by the user.
"""

import sys
import logging
from pathlib import Path
from typing import Dict, List, Optional

from eth_utils import add_0x_prefix, is_address

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier.verifierBuildDataClasses import ContractInformation, LibraryAddresses, LibraryInformation, \
    LibraryName
from ContractVerifier.verifierBytecode import LinkReferences, hex_to_bytes
from ContractVerifier.verifierErrors import DuplicatedLibraryError, InvalidLibraryAddressError, \
    LibraryAddressesMismatchError, LibraryMultipleMatchesError, LibraryNotFoundError, MissingLibrariesError
from Shared import verifierUtils as Util

libraries_logger = logging.getLogger("libraries")


def get_library_names(link_references: Optional[LinkReferences]) -> List[str]:
    """
    @return: the fully qualified names of the libraries in the link references
    """
    if not link_references:
        return []
    return [Util.get_fully_qualified_name(source_name, lib_name)
            for source_name, libraries in link_references.items()
            for lib_name in libraries]


def lookup_library(all_libraries: List[str], detectable_libraries: List[str], undetectable_libraries: List[str],
                   library_name: str, contract_name: str) -> LibraryName:
    """
    @param library_name: either a fully qualified name or a bare library name
    @raise LibraryNotFoundError: no library of the contract has this name
    @raise LibraryMultipleMatchesError: a bare name matches libraries of several sources
    """
    matching_libraries = [lib for lib in all_libraries
                          if lib == library_name or Util.parse_fully_qualified_name(lib)[1] == library_name]
    if not matching_libraries:
        raise LibraryNotFoundError(contract_name, library_name, all_libraries, detectable_libraries,
                                   undetectable_libraries)
    if len(matching_libraries) > 1:
        raise LibraryMultipleMatchesError(contract_name, library_name, matching_libraries)

    source_name, lib_name = Util.parse_fully_qualified_name(matching_libraries[0])
    return LibraryName(source_name, lib_name)


def normalize_libraries(all_libraries: List[str], detectable_libraries: List[str], undetectable_libraries: List[str],
                        libraries: Dict[str, str], contract_name: str) -> LibraryAddresses:
    """
    Maps each user given library to its source name and library name
    """
    library_fqns = set()
    normalized_libraries: LibraryAddresses = {}
    for linked_library_name, linked_library_address in libraries.items():
        if not is_address(linked_library_address):
            raise InvalidLibraryAddressError(contract_name, linked_library_name, str(linked_library_address))
        linked_library_address = add_0x_prefix(linked_library_address)

        needed_library = lookup_library(all_libraries, detectable_libraries, undetectable_libraries,
                                        linked_library_name, contract_name)
        if needed_library.fully_qualified_name in library_fqns:
            raise DuplicatedLibraryError(needed_library.lib_name, needed_library.fully_qualified_name)
        library_fqns.add(needed_library.fully_qualified_name)

        normalized_libraries.setdefault(needed_library.source_name, {})[needed_library.lib_name] = \
            linked_library_address
    return normalized_libraries


def get_detected_library_addresses(deployed_bytecode: str,
                                   link_references: Optional[LinkReferences]) -> LibraryAddresses:
    """
    @return: the addresses found in the deployed bytecode at the first link reference of every library
    """
    detected: LibraryAddresses = {}
    if not link_references:
        return detected
    bytecode = hex_to_bytes(deployed_bytecode)
    for source_name, libraries in link_references.items():
        for lib_name, references in libraries.items():
            if not references:
                continue
            start, length = references[0]["start"], references[0]["length"]
            detected.setdefault(source_name, {})[lib_name] = "0x" + bytecode[start:start + length].hex()
    return detected


def merge_libraries(normalized_libraries: LibraryAddresses, detected_libraries: LibraryAddresses) -> LibraryAddresses:
    """
    @raise LibraryAddressesMismatchError: a user given address is not the one found in the deployed bytecode
    """
    conflicts = []
    for source_name, libraries in normalized_libraries.items():
        for lib_name, lib_address in libraries.items():
            detected_address = detected_libraries.get(source_name, {}).get(lib_name)
            # detected addresses are always lower case
            if detected_address is not None and lib_address.lower() != detected_address.lower():
                conflicts.append((Util.get_fully_qualified_name(source_name, lib_name), detected_address,
                                  lib_address))
    if conflicts:
        raise LibraryAddressesMismatchError(conflicts)

    merged: LibraryAddresses = {}
    for libraries_to_add in (normalized_libraries, detected_libraries):
        for source_name, libraries in libraries_to_add.items():
            merged.setdefault(source_name, {}).update(libraries)
    return merged


def get_library_information(contract_information: ContractInformation,
                            libraries: Dict[str, str]) -> LibraryInformation:
    """
    @param libraries: the user given library addresses, keyed by library name or fully qualified name
    @return: the address of every library of the contract, and the libraries that cannot be detected
    @raise InvalidLibrariesError: see normalize_libraries and merge_libraries
    @raise MissingLibrariesError: there is a library whose address is neither given nor detected
    """
    evm = contract_information.contract_output.get("evm", {})
    all_libraries = get_library_names(evm.get("bytecode", {}).get("linkReferences"))
    deployed_link_references = evm.get("deployedBytecode", {}).get("linkReferences")
    detectable_libraries = get_library_names(deployed_link_references)
    undetectable_libraries = [lib for lib in all_libraries if lib not in detectable_libraries]
    libraries_logger.debug(f"{contract_information.fully_qualified_name} uses the libraries {all_libraries}, "
                           f"undetectable: {undetectable_libraries}")

    normalized_libraries = normalize_libraries(all_libraries, detectable_libraries, undetectable_libraries,
                                               libraries, contract_information.contract_name)
    detected_libraries = get_detected_library_addresses(contract_information.deployed_bytecode,
                                                        deployed_link_references)
    merged_libraries = merge_libraries(normalized_libraries, detected_libraries)

    merged_library_names = [Util.get_fully_qualified_name(source_name, lib_name)
                            for source_name, libs in merged_libraries.items()
                            for lib_name in libs]
    if len(merged_library_names) < len(all_libraries):
        raise MissingLibrariesError(contract_information.fully_qualified_name, all_libraries,
                                    merged_library_names, undetectable_libraries)

    return LibraryInformation(libraries=merged_libraries, undetectable_libraries=undetectable_libraries)


def link_bytecode(unlinked_bytecode: str, link_references: Optional[LinkReferences],
                  libraries: LibraryAddresses) -> str:
    """
    Writes the library addresses over the placeholders of unlinked compiler output
    @return: the linked bytecode as a hex string without the 0x prefix
    @raise MissingLibrariesError: a library of the link references has no address
    """
    linked = Util.strip_hex_prefix(unlinked_bytecode)
    if not link_references:
        return linked

    missing = [Util.get_fully_qualified_name(source_name, lib_name)
               for source_name, libs in link_references.items()
               for lib_name in libs
               if lib_name not in libraries.get(source_name, {})]
    if missing:
        all_libraries = get_library_names(link_references)
        raise MissingLibrariesError("the linked bytecode", all_libraries,
                                    [lib for lib in all_libraries if lib not in missing], [])

    for source_name, libs in link_references.items():
        for lib_name, references in libs.items():
            address = Util.strip_hex_prefix(libraries[source_name][lib_name]).lower()
            for ref in references:
                start, length = ref["start"] * 2, ref["length"] * 2
                linked = linked[:start] + address[:length] + linked[start + length:]
    return linked
