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
Verification of one deployed contract on the enabled back-ends.

Etherscan verification goes through the states
    RESOLVING -> MINIMAL_ATTEMPT -> FULL_ATTEMPT -> SUCCESS / FAILED
The minimal attempt submits only the file of the contract and the files it imports, so unrelated contracts are not
published. Some contracts only verify with the exact input they were compiled with, which is what the full attempt
submits.
"""

import copy
import json
import sys
import time
import logging
from dataclasses import dataclass
from enum import auto
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier import verifierCompilerVersions as CompilerVersions
from ContractVerifier.verifierArguments import check_arguments, encode_constructor_arguments, \
    resolve_arguments
from ContractVerifier.verifierArtifacts import BuildInfoArtifactStore, resolve_contract_information
from ContractVerifier.verifierBuildDataClasses import ContractInformation, ExtendedContractInformation, \
    VerificationArgs, VerificationResponse
from ContractVerifier.verifierChains import get_current_chain_config
from ContractVerifier.verifierCompileTasks import BuildInfoCompileTasks, get_minimal_input
from ContractVerifier.verifierContext import VerifierConfig, VerifyTaskArgs
from ContractVerifier.verifierErrors import BuildInfoNotFoundError, ContractVerificationFailedError, \
    MissingMetadataError, MissingRpcUrlError, VerificationAPIUnexpectedMessageError, \
    VerificationSubtasksFailedError
from ContractVerifier.verifierExplorerIO import Etherscan
from ContractVerifier.verifierLibraries import get_library_information
from ContractVerifier.verifierRpc import JsonRpcProvider, get_deployed_bytecode
from ContractVerifier.verifierSourcifyIO import Sourcify
from Shared import verifierUtils as Util

run_logger = logging.getLogger("run")

# compilation is bound to take some time, no sense in polling the status right away
VERIFICATION_SETTLING_SECONDS = 0.7

ETHERSCAN_SUBTASK = "Etherscan"
SOURCIFY_SUBTASK = "Sourcify"


class VerificationState(Util.NoValEnum):
    RESOLVING = auto()
    MINIMAL_ATTEMPT = auto()
    FULL_ATTEMPT = auto()
    SUCCESS = auto()
    FAILED = auto()


@dataclass(frozen=True)
class VerificationOutcome:
    state: VerificationState
    response: Optional[VerificationResponse] = None
    contract_url: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state == VerificationState.SUCCESS


def attempt_verification(etherscan: Etherscan, address: str, compiler_input: Dict[str, Any],
                         contract_information: ExtendedContractInformation, encoded_constructor_arguments: str,
                         settling_seconds: float = VERIFICATION_SETTLING_SECONDS) -> VerificationResponse:
    """
    Submits one compiler input and waits for its result
    @raise VerificationAPIUnexpectedMessageError: the final status is neither a success nor a failure
    """
    compiler_input = copy.deepcopy(compiler_input)
    # the linking information must be part of the submitted input
    compiler_input.setdefault("settings", {})["libraries"] = contract_information.libraries

    contract_fqn = contract_information.fully_qualified_name
    response = etherscan.verify(address, json.dumps(compiler_input), contract_fqn,
                                f"v{contract_information.solc_long_version}", encoded_constructor_arguments)
    guid = response.message
    run_logger.info(f"Successfully submitted source code for contract\n{contract_fqn} at {address}\n"
                    "for verification on the block explorer. Waiting for verification result...\n")

    time.sleep(settling_seconds)
    verification_status = etherscan.get_verification_status(guid)

    if not (verification_status.is_verification_failure() or verification_status.is_verification_success()):
        raise VerificationAPIUnexpectedMessageError(verification_status.message)

    if verification_status.is_verification_success():
        Util.print_completion_message(f"Successfully verified contract {contract_information.contract_name} on "
                                      "the block explorer.")
        etherscan.print_contract_url(address)

    return VerificationResponse(success=verification_status.is_verification_success(),
                                message=verification_status.message)


def get_configured_versions(config: VerifierConfig, store: BuildInfoArtifactStore) -> List[str]:
    """
    @return: the compiler versions of the conf file, or the versions of the build infos if the conf file has none
    """
    configured_versions = CompilerVersions.get_configured_compiler_versions(config.solidity)
    if configured_versions:
        return configured_versions
    return store.get_all_compiler_versions()


def resolve_deployed_contract(verification_args: VerificationArgs, config: VerifierConfig,
                              provider: JsonRpcProvider,
                              store: BuildInfoArtifactStore) -> ExtendedContractInformation:
    """
    Finds the local contract of the deployed bytecode and the addresses of its libraries
    """
    configured_versions = get_configured_versions(config, store)
    deployed_bytecode = get_deployed_bytecode(provider, verification_args.address)
    matching_versions = CompilerVersions.get_and_check_matching_versions(deployed_bytecode, configured_versions,
                                                                         config.network.name)

    contract_information: ContractInformation = resolve_contract_information(store, deployed_bytecode,
                                                                             matching_versions, config.network.name,
                                                                             verification_args.contract_fqn)
    run_logger.debug(f"the deployed bytecode at {verification_args.address} is "
                     f"{contract_information.fully_qualified_name}")
    library_information = get_library_information(contract_information, verification_args.libraries)
    return ExtendedContractInformation.extend(contract_information, library_information)


def run_verification_attempts(etherscan: Etherscan, address: str, minimal_input: Dict[str, Any],
                              contract_information: ExtendedContractInformation,
                              encoded_constructor_arguments: str,
                              settling_seconds: float = VERIFICATION_SETTLING_SECONDS) -> VerificationOutcome:
    """
    The minimal input first, then the full compiler input of the build info. The second attempt never starts before
    the result of the first one is known
    """
    state = VerificationState.MINIMAL_ATTEMPT
    response = attempt_verification(etherscan, address, minimal_input, contract_information,
                                    encoded_constructor_arguments, settling_seconds)
    if response.success:
        return VerificationOutcome(VerificationState.SUCCESS, response, etherscan.get_contract_url(address))

    run_logger.info(f"We tried verifying your contract {contract_information.contract_name} without including any "
                    "unrelated one, but it failed.\n"
                    "Trying again with the full solc input used to compile and deploy it.\n"
                    "This means that unrelated contracts may be displayed on the block explorer...\n")
    run_logger.debug(f"{state} failed: {response.message}")

    state = VerificationState.FULL_ATTEMPT
    response = attempt_verification(etherscan, address, contract_information.compiler_input, contract_information,
                                    encoded_constructor_arguments, settling_seconds)
    if response.success:
        return VerificationOutcome(VerificationState.SUCCESS, response, etherscan.get_contract_url(address))
    run_logger.debug(f"{state} failed: {response.message}")
    return VerificationOutcome(VerificationState.FAILED, response)


def verify_on_etherscan(verification_args: VerificationArgs, config: VerifierConfig, provider: JsonRpcProvider,
                        store: BuildInfoArtifactStore, etherscan: Optional[Etherscan] = None,
                        settling_seconds: float = VERIFICATION_SETTLING_SECONDS) -> VerificationOutcome:
    """
    @raise ContractVerificationFailedError: both the minimal and the full attempt failed
    """
    address = verification_args.address
    run_logger.debug(f"{VerificationState.RESOLVING}: {address} on {config.network.name}")
    if etherscan is None:
        chain_config = get_current_chain_config(config.network.name, provider.get_chain_id(),
                                                config.etherscan.custom_chains)
        etherscan = Etherscan.from_chain_config(config.etherscan.api_key, chain_config)

    if etherscan.is_verified(address):
        contract_url = etherscan.get_contract_url(address)
        Util.CONSOLE.print(f"The contract {address} has already been verified.")
        etherscan.print_contract_url(address)
        return VerificationOutcome(VerificationState.SUCCESS, contract_url=contract_url)

    contract_information = resolve_deployed_contract(verification_args, config, provider, store)

    build_info = store.get_build_info(contract_information.fully_qualified_name)
    if build_info is None:
        raise BuildInfoNotFoundError(contract_information.fully_qualified_name)
    minimal_input = get_minimal_input(BuildInfoCompileTasks(build_info), contract_information.source_name)

    encoded_constructor_arguments = encode_constructor_arguments(contract_information.contract_output.get("abi", []),
                                                                 contract_information.source_name,
                                                                 contract_information.contract_name,
                                                                 verification_args.constructor_args)

    outcome = run_verification_attempts(etherscan, address, minimal_input, contract_information,
                                        encoded_constructor_arguments, settling_seconds)
    if not outcome.success:
        message = outcome.response.message if outcome.response is not None else ""
        raise ContractVerificationFailedError(message, contract_information.undetectable_libraries)
    return outcome


def get_sourcify_files(contract_information: ContractInformation) -> Dict[str, str]:
    """
    @return: the metadata of the contract and every source it lists, keyed by file name
    @raise MissingMetadataError: the compiler output has no metadata
    """
    metadata = contract_information.contract_output.get("metadata")
    if not metadata:
        raise MissingMetadataError(contract_information.fully_qualified_name)

    files = {"metadata.json": metadata}
    sources = contract_information.compiler_input.get("sources", {})
    for source_name in json.loads(metadata).get("sources", {}):
        if source_name in sources and "content" in sources[source_name]:
            files[source_name] = sources[source_name]["content"]
    return files


def verify_on_sourcify(verification_args: VerificationArgs, config: VerifierConfig, provider: JsonRpcProvider,
                       store: BuildInfoArtifactStore, sourcify: Optional[Sourcify] = None) -> VerificationOutcome:
    address = verification_args.address
    if sourcify is None:
        sourcify = Sourcify(provider.get_chain_id(), config.sourcify.api_url, config.sourcify.browser_url)

    match_type = sourcify.is_verified(address)
    if match_type:
        contract_url = sourcify.get_contract_url(address, match_type)
        Util.CONSOLE.print(f"The contract {address} has already been verified on Sourcify.")
        Util.CONSOLE.print(Util.print_rich_link(contract_url))
        return VerificationOutcome(VerificationState.SUCCESS, contract_url=contract_url)

    contract_information = resolve_deployed_contract(verification_args, config, provider, store)
    response = sourcify.verify(address, get_sourcify_files(contract_information))

    contract_url = sourcify.get_contract_url(address, response.get_status())
    Util.print_completion_message(f"Successfully verified contract {contract_information.contract_name} on "
                                  "Sourcify.")
    Util.CONSOLE.print(Util.print_rich_link(contract_url))
    return VerificationOutcome(VerificationState.SUCCESS, VerificationResponse(True, str(response.get_status())),
                               contract_url)


def print_sourcify_disabled_warning() -> None:
    run_logger.warning("Skipping Sourcify verification: Sourcify is disabled. To enable it, add this entry to your "
                       "conf file:\n\n"
                       "sourcify: {\n"
                       "  enabled: true\n"
                       "}\n")


def print_verification_errors(errors: Dict[str, Exception]) -> None:
    error_message = "The verifier found one or more errors during the verification process:\n\n"
    for subtask_label, error in errors.items():
        error_message += f"{subtask_label}:\n{error}\n\n"
    Util.CONSOLE.print(error_message, style="red", markup=False)


class VerificationBatch:
    """
    Independent verifications of the same deployment. A failing back-end does not stop the others, all the failures
    are reported together at the end
    """

    def __init__(self) -> None:
        self.subtasks: List[Tuple[str, Callable[[], VerificationOutcome]]] = []

    def add(self, label: str, subtask: Callable[[], VerificationOutcome]) -> None:
        self.subtasks.append((label, subtask))

    def run(self) -> Dict[str, VerificationOutcome]:
        """
        @raise VerificationSubtasksFailedError: at least one subtask failed
        """
        outcomes: Dict[str, VerificationOutcome] = {}
        errors: Dict[str, Exception] = {}
        for label, subtask in self.subtasks:
            run_logger.debug(f"running the {label} verification")
            try:
                outcomes[label] = subtask()
            except Util.VerifierUserInputError as e:
                run_logger.debug(f"the {label} verification failed", exc_info=e)
                errors[label] = e

        if errors:
            print_verification_errors(errors)
            raise VerificationSubtasksFailedError(list(errors))
        return outcomes


def run_verification(config: VerifierConfig, verification_args: VerificationArgs,
                     provider: Optional[JsonRpcProvider] = None,
                     store: Optional[BuildInfoArtifactStore] = None) -> Dict[str, VerificationOutcome]:
    """
    Verifies an already resolved request on every enabled back-end
    @return: the outcome of each back-end
    """
    if provider is None:
        if config.network.url is None:
            raise MissingRpcUrlError(config.network.name)
        provider = JsonRpcProvider(config.network.url, config.network.name)
    if store is None:
        store = BuildInfoArtifactStore(config.build_info_dir)
    rpc_provider: JsonRpcProvider = provider
    artifact_store: BuildInfoArtifactStore = store

    batch = VerificationBatch()
    if config.etherscan.enabled:
        batch.add(ETHERSCAN_SUBTASK,
                  lambda: verify_on_etherscan(verification_args, config, rpc_provider, artifact_store))

    if config.sourcify.enabled:
        batch.add(SOURCIFY_SUBTASK,
                  lambda: verify_on_sourcify(verification_args, config, rpc_provider, artifact_store))
    else:
        print_sourcify_disabled_warning()

    if not config.etherscan.enabled and not config.sourcify.enabled:
        run_logger.warning("No verification services are enabled. Please enable at least one verification service "
                           "in your conf file.")

    return batch.run()


def verify_contract(config: VerifierConfig, task_args: VerifyTaskArgs,
                    provider: Optional[JsonRpcProvider] = None,
                    store: Optional[BuildInfoArtifactStore] = None) -> Dict[str, VerificationOutcome]:
    """
    Verifies the contract of a command line request, whose arguments and libraries may come from files
    """
    verification_args = resolve_arguments(task_args.address, list(task_args.constructor_args_params),
                                          task_args.constructor_args, task_args.libraries, task_args.contract)
    return run_verification(config, verification_args, provider, store)


def verify(config: VerifierConfig, address: str, constructor_arguments: Any = None, libraries: Any = None,
           contract: Optional[str] = None, provider: Optional[JsonRpcProvider] = None,
           store: Optional[BuildInfoArtifactStore] = None) -> Dict[str, VerificationOutcome]:
    """
    Verifies a contract from code, e.g. at the end of a deployment script
    @param constructor_arguments: the list of arguments the contract was deployed with, empty when None
    @param libraries: library name or fully qualified name -> address, empty when None
    @param contract: the fully qualified name of the contract, inferred from the deployed bytecode when None
    @raise InvalidConstructorArgumentsError: constructor_arguments is not a list
    @raise InvalidLibrariesError: libraries is not a dictionary
    """
    verification_args = check_arguments(address, [] if constructor_arguments is None else constructor_arguments,
                                        {} if libraries is None else libraries, contract)
    return run_verification(config, verification_args, provider, store)
