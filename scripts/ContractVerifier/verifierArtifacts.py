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
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier import verifierCompilerVersions as CompilerVersions
from ContractVerifier.verifierBuildDataClasses import BuildInfo, ContractInformation
from ContractVerifier.verifierBytecode import Bytecode
from ContractVerifier.verifierErrors import BuildInfoCompilerVersionMismatchError, BuildInfoNotFoundError, \
    ContractNotFoundError, DeployedBytecodeMismatchError, DeployedBytecodeMultipleMatchesError, \
    DeployedBytecodeNotMatchedError
from Shared import verifierUtils as Util

artifacts_logger = logging.getLogger("artifacts")

DEFAULT_BUILD_INFO_DIR = Path("artifacts") / "build-info"


class BuildInfoArtifactStore:
    """
    The compiled contracts of a project, read from a directory of build info files such as Hardhat's
    artifacts/build-info. When a contract appears in several build infos, the most recently written one wins.
    """

    def __init__(self, build_info_dir: Path = DEFAULT_BUILD_INFO_DIR) -> None:
        self.build_info_dir = Path(build_info_dir)
        self._fqn_to_build_info: Optional[Dict[str, BuildInfo]] = None

    def __load(self) -> Dict[str, BuildInfo]:
        if self._fqn_to_build_info is not None:
            return self._fqn_to_build_info

        fqn_to_build_info: Dict[str, BuildInfo] = {}
        if not self.build_info_dir.is_dir():
            artifacts_logger.warning(f"the build info directory {self.build_info_dir} does not exist, did you "
                                     "compile the project?")
            self._fqn_to_build_info = fqn_to_build_info
            return fqn_to_build_info

        build_info_files = sorted(self.build_info_dir.glob("*.json"), key=lambda p: (p.stat().st_mtime, p.name))
        for build_info_file in build_info_files:
            try:
                build_info = BuildInfo.from_json(Util.read_json_file(build_info_file), build_info_file)
            except json.JSONDecodeError as e:
                raise Util.VerifierUserInputError(f"failed to parse the build info {build_info_file}", orig=e)
            artifacts_logger.debug(f"loaded {build_info}")
            for source_name, contracts in build_info.output.get("contracts", {}).items():
                for contract_name in contracts:
                    fqn = Util.get_fully_qualified_name(source_name, contract_name)
                    if fqn in fqn_to_build_info:
                        artifacts_logger.debug(f"{fqn} of {fqn_to_build_info[fqn].path} is overridden by "
                                               f"{build_info_file}")
                    fqn_to_build_info[fqn] = build_info

        self._fqn_to_build_info = fqn_to_build_info
        return fqn_to_build_info

    def artifact_exists(self, contract_fqn: str) -> bool:
        return contract_fqn in self.__load()

    def get_build_info(self, contract_fqn: str) -> Optional[BuildInfo]:
        return self.__load().get(contract_fqn)

    def get_all_fully_qualified_names(self) -> List[str]:
        return sorted(self.__load().keys())

    def get_all_compiler_versions(self) -> List[str]:
        versions: List[str] = []
        for build_info in self.__load().values():
            if build_info.solc_version not in versions:
                versions.append(build_info.solc_version)
        return versions


def extract_matching_contract_information(contract_fqn: str, build_info: BuildInfo,
                                          deployed_bytecode: Bytecode) -> Optional[ContractInformation]:
    """
    @return: the information of the contract if its compiled runtime bytecode matches the deployed one, else None
    """
    source_name, contract_name = Util.parse_fully_qualified_name(contract_fqn)
    contract_output = build_info.get_contract_output(source_name, contract_name)
    if contract_output is None:
        return None

    compiled_deployed_bytecode = contract_output.get("evm", {}).get("deployedBytecode")
    if not compiled_deployed_bytecode or "object" not in compiled_deployed_bytecode:
        artifacts_logger.debug(f"{contract_fqn} has no runtime bytecode in {build_info}")
        return None

    if not deployed_bytecode.compare(compiled_deployed_bytecode):
        return None

    return ContractInformation(compiler_input=build_info.input,
                               solc_long_version=build_info.solc_long_version,
                               source_name=source_name,
                               contract_name=contract_name,
                               contract_output=contract_output,
                               deployed_bytecode=deployed_bytecode.stringify())


def get_named_contract_information(store: BuildInfoArtifactStore, contract_fqn: str, deployed_bytecode: Bytecode,
                                   matching_versions: Sequence[str], network: str) -> ContractInformation:
    if not store.artifact_exists(contract_fqn):
        raise ContractNotFoundError(contract_fqn)

    build_info = store.get_build_info(contract_fqn)
    if build_info is None:
        raise BuildInfoNotFoundError(contract_fqn)

    if not deployed_bytecode.is_ovm() and not CompilerVersions.is_version_in(build_info.solc_version,
                                                                             matching_versions):
        raise BuildInfoCompilerVersionMismatchError(contract_fqn, deployed_bytecode.get_version_description(),
                                                    deployed_bytecode.has_version_range(), build_info.solc_version,
                                                    network)

    contract_information = extract_matching_contract_information(contract_fqn, build_info, deployed_bytecode)
    if contract_information is None:
        raise DeployedBytecodeMismatchError(network, contract_fqn)
    return contract_information


def lookup_matching_bytecode(store: BuildInfoArtifactStore, matching_versions: Sequence[str],
                             deployed_bytecode: Bytecode) -> List[ContractInformation]:
    """
    @return: every compiled contract of the project whose runtime bytecode matches the deployed one
    """
    matches = []
    for contract_fqn in store.get_all_fully_qualified_names():
        build_info = store.get_build_info(contract_fqn)
        if build_info is None:
            continue
        if not deployed_bytecode.is_ovm() and not CompilerVersions.is_version_in(build_info.solc_version,
                                                                                 matching_versions):
            continue
        contract_information = extract_matching_contract_information(contract_fqn, build_info, deployed_bytecode)
        if contract_information is not None:
            artifacts_logger.debug(f"{contract_fqn} matches the deployed bytecode")
            matches.append(contract_information)
    return matches


def get_inferred_contract_information(store: BuildInfoArtifactStore, deployed_bytecode: Bytecode,
                                      matching_versions: Sequence[str], network: str) -> ContractInformation:
    matches = lookup_matching_bytecode(store, matching_versions, deployed_bytecode)
    if not matches:
        raise DeployedBytecodeNotMatchedError(network)
    if len(matches) > 1:
        raise DeployedBytecodeMultipleMatchesError([match.fully_qualified_name for match in matches])
    return matches[0]


def resolve_contract_information(store: BuildInfoArtifactStore, deployed_bytecode: Bytecode,
                                 matching_versions: Sequence[str], network: str,
                                 contract_fqn: Optional[str] = None) -> ContractInformation:
    """
    Finds the local contract that produced the deployed bytecode. With a fully qualified name only that contract is
    checked, otherwise all the contracts of the project are, and exactly one must match.
    """
    if contract_fqn is not None:
        return get_named_contract_information(store, contract_fqn, deployed_bytecode, matching_versions, network)
    return get_inferred_contract_information(store, deployed_bytecode, matching_versions, network)
