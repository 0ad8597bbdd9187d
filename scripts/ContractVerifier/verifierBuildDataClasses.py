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

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from Shared import verifierUtils as Util

# sourceName -> libName -> address
LibraryAddresses = Dict[str, Dict[str, str]]


class BuildInfo:
    """
    One run of the compiler as recorded by the build tool: the standard JSON input and output, and the compiler
    """
    def __init__(self, solc_version: str, solc_long_version: str, input: Dict[str, Any], output: Dict[str, Any],
                 build_info_id: str = "", path: Optional[Path] = None):
        self.solc_version = solc_version
        self.solc_long_version = solc_long_version
        self.input = input
        self.output = output
        self.build_info_id = build_info_id
        self.path = path

    @classmethod
    def from_json(cls, data: Dict[str, Any], path: Optional[Path] = None) -> "BuildInfo":
        missing = [key for key in ("solcVersion", "solcLongVersion", "input", "output") if key not in data]
        if missing:
            raise Util.VerifierUserInputError(f"the build info {path} is missing the keys {', '.join(missing)}")
        return cls(data["solcVersion"], data["solcLongVersion"], data["input"], data["output"],
                   data.get("id", ""), path)

    def get_contract_output(self, source_name: str, contract_name: str) -> Optional[Dict[str, Any]]:
        return self.output.get("contracts", {}).get(source_name, {}).get(contract_name)

    def __repr__(self) -> str:
        return f"BuildInfo(id={self.build_info_id}, solc={self.solc_long_version}, path={self.path})"


@dataclass(frozen=True)
class LibraryName:
    source_name: str
    lib_name: str

    @property
    def fully_qualified_name(self) -> str:
        return Util.get_fully_qualified_name(self.source_name, self.lib_name)


@dataclass
class ContractInformation:
    compiler_input: Dict[str, Any]
    solc_long_version: str
    source_name: str
    contract_name: str
    contract_output: Dict[str, Any]
    deployed_bytecode: str

    @property
    def fully_qualified_name(self) -> str:
        return Util.get_fully_qualified_name(self.source_name, self.contract_name)


@dataclass
class LibraryInformation:
    libraries: LibraryAddresses = field(default_factory=dict)
    undetectable_libraries: List[str] = field(default_factory=list)


@dataclass
class ExtendedContractInformation(ContractInformation):
    libraries: LibraryAddresses = field(default_factory=dict)
    undetectable_libraries: List[str] = field(default_factory=list)

    @classmethod
    def extend(cls, contract_information: ContractInformation,
               library_information: LibraryInformation) -> "ExtendedContractInformation":
        return cls(compiler_input=contract_information.compiler_input,
                   solc_long_version=contract_information.solc_long_version,
                   source_name=contract_information.source_name,
                   contract_name=contract_information.contract_name,
                   contract_output=contract_information.contract_output,
                   deployed_bytecode=contract_information.deployed_bytecode,
                   libraries=library_information.libraries,
                   undetectable_libraries=library_information.undetectable_libraries)


@dataclass(frozen=True)
class VerificationResponse:
    success: bool
    message: str


@dataclass(frozen=True)
class VerificationArgs:
    """
    The resolved and validated arguments of one verification
    """
    address: str
    constructor_args: List[Any]
    libraries: Dict[str, str]
    contract_fqn: Optional[str] = None
