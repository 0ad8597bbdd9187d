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
All the errors the verifier reports to the user. Every error is a VerifierUserInputError, so the entry point prints
it without a stack trace and exits with code 1.
"""

import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from Shared import verifierUtils as Util

CONTRACT_FLAG_EXAMPLE = f"{Util.VERIFY_CONTRACT_APP} --contract contracts/Example.sol:ExampleContract <other args>"


def bullet_list(items: Sequence[str]) -> str:
    return Util.NEW_LINE.join(f"  * {item}" for item in items)


class VerifyError(Util.VerifierUserInputError):
    """Base class of every error of the contract verifier"""


class MissingAddressError(VerifyError):
    def __init__(self) -> None:
        super().__init__("You didn't provide any address. Please re-run the verification with the address of the "
                         "contract you want to verify.")


class InvalidAddressError(VerifyError):
    def __init__(self, address: str) -> None:
        super().__init__(f"{address} is an invalid address.")


class InvalidContractNameError(VerifyError):
    def __init__(self, contract_name: str) -> None:
        super().__init__("A valid fully qualified name was expected. Fully qualified names look like this: "
                         "\"contracts/AContract.sol:TheContract\"\n"
                         f"Instead, this name was received: {contract_name}")


class MissingApiKeyError(VerifyError):
    def __init__(self, network: str) -> None:
        super().__init__(f"You are trying to verify a contract in '{network}', but no API token was found for this "
                         "network. Please provide one in the etherscan section of your conf file, with the "
                         f"--etherscan_api_key flag or with the {Util.ENVVAR_ETHERSCAN_API_KEY} environment variable. "
                         "For example:\n\n"
                         "{\n"
                         "  etherscan: {\n"
                         "    apiKey: {\n"
                         f"      {network}: \"your API key\"\n"
                         "    }\n"
                         "  }\n"
                         "}")


class InvalidConstructorArgumentsError(VerifyError):
    def __init__(self, message: str = "The constructor arguments should be a list.") -> None:
        super().__init__(message)


class ExclusiveConstructorArgumentsError(InvalidConstructorArgumentsError):
    def __init__(self) -> None:
        super().__init__("The positional constructor arguments and --constructor_args are exclusive. "
                         "Please provide only one of them.")


class InvalidConstructorArgumentsModuleError(InvalidConstructorArgumentsError):
    def __init__(self, path: str) -> None:
        super().__init__(f"The file {path} doesn't contain a list of constructor arguments.")


class ABIArgumentLengthError(InvalidConstructorArgumentsError):
    def __init__(self, contract_fqn: str, required: int, provided: int) -> None:
        super().__init__(f"The constructor for {contract_fqn} has {required} parameters but {provided} arguments "
                         "were provided instead.")


class ABIArgumentTypeError(InvalidConstructorArgumentsError):
    def __init__(self, contract_fqn: str, reason: str) -> None:
        super().__init__(f"The constructor arguments for {contract_fqn} do not match its parameter types.\n"
                         f"Reason: {reason}")


class InvalidLibrariesError(VerifyError):
    def __init__(self, message: str = "The libraries parameter should be a dictionary.") -> None:
        super().__init__(message)


class InvalidLibrariesModuleError(InvalidLibrariesError):
    def __init__(self, path: str) -> None:
        super().__init__(f"The file {path} doesn't contain a dictionary of libraries.")


class InvalidLibraryAddressError(InvalidLibrariesError):
    def __init__(self, contract_name: str, library_name: str, library_address: str) -> None:
        super().__init__(f"You gave a link for the contract {contract_name} with the library {library_name}, which "
                         f"is not a valid address: {library_address}.")


class DuplicatedLibraryError(InvalidLibrariesError):
    def __init__(self, library_name: str, library_fqn: str) -> None:
        super().__init__(f"The library names {library_name} and {library_fqn} refer to the same library and were "
                         "given as two entries in the libraries dictionary.\n"
                         "Remove one of them and review your libraries dictionary before proceeding.")


class LibraryNotFoundError(InvalidLibrariesError):
    def __init__(self, contract_name: str, library_name: str, all_libraries: List[str],
                 detectable_libraries: List[str], undetectable_libraries: List[str]) -> None:
        if all_libraries:
            details = "This contract uses the following external libraries:\n" + \
                      get_library_details(detectable_libraries, undetectable_libraries)
        else:
            details = "This contract doesn't use any external libraries."
        super().__init__(f"You gave an address for the library {library_name} in the libraries dictionary, which is "
                         f"not one of the libraries of contract {contract_name}.\n{details}")


class LibraryMultipleMatchesError(InvalidLibrariesError):
    def __init__(self, contract_name: str, library_name: str, fqn_matches: List[str]) -> None:
        super().__init__(f"The library name {library_name} is ambiguous for the contract {contract_name}.\n"
                         "It may resolve to one of the following libraries:\n"
                         f"{bullet_list(fqn_matches)}\n\n"
                         "To fix this, choose one of these fully qualified library names and replace it in your "
                         "libraries dictionary.")


class LibraryAddressesMismatchError(InvalidLibrariesError):
    def __init__(self, conflicts: List[Tuple[str, str, str]]) -> None:
        """
        @param conflicts: a list of (library, detected address, input address)
        """
        details = Util.NEW_LINE.join(f"  * {library}\n"
                                     f"    given address: {input_address}\n"
                                     f"    detected address: {detected_address}"
                                     for library, detected_address, input_address in conflicts)
        super().__init__("The following detected library addresses are different from the ones provided:\n"
                         f"{details}\n\n"
                         "You can either fix these addresses in your libraries dictionary or simply remove them to "
                         "let the verifier autodetect them.")


class MissingLibrariesError(VerifyError):
    def __init__(self, contract_name: str, all_libraries: List[str], merged_libraries: List[str],
                 undetectable_libraries: List[str]) -> None:
        missing_libraries = [lib for lib in all_libraries if lib not in merged_libraries]
        self.missing_libraries = missing_libraries
        hint = ""
        if len(undetectable_libraries) == len(missing_libraries):
            hint = "\n\nLibraries that are only called from the constructor must be given explicitly with the " \
                   "--libraries flag."
        super().__init__(f"The contract {contract_name} has one or more library addresses that cannot be detected "
                         "from deployed bytecode.\n"
                         "This can occur if the library is only called in the contract constructor. The missing "
                         f"libraries are:\n{bullet_list(missing_libraries)}{hint}")


def get_library_details(detectable_libraries: List[str], undetectable_libraries: List[str]) -> str:
    lines = [f"  * {lib} (optional)" for lib in detectable_libraries] + [f"  * {lib}" for lib in
                                                                          undetectable_libraries]
    tooltip = ""
    if detectable_libraries:
        tooltip = "\n\nLibraries marked as optional don't need to be specified since their addresses are " \
                  "autodetected by the verifier."
    return Util.NEW_LINE.join(lines) + tooltip


class ChainConfigNotFoundError(VerifyError):
    def __init__(self, chain_id: int) -> None:
        super().__init__(f"Trying to verify a contract in a network with chain id {chain_id}, but the verifier "
                         "doesn't recognize it as a supported chain.\n\n"
                         "You can manually add support for it in the customChains list of the etherscan section of "
                         "your conf file.\n\n"
                         f"To see the list of supported networks, run:\n\n  {Util.VERIFY_CONTRACT_APP} --list_networks")


class NetworkNotSupportedError(VerifyError):
    def __init__(self, network: str) -> None:
        super().__init__(f"The selected network is \"{network}\", which is not supported for contract verification."
                         "\n\nIf you intended to use a different network, ensure that you provide the --network flag.")


class MissingRpcUrlError(VerifyError):
    def __init__(self, network: str) -> None:
        super().__init__(f"No JSON-RPC endpoint is configured for the network \"{network}\". Provide one with the "
                         f"--rpc_url flag, or add it to the networks section of your conf file:\n\n"
                         "{\n"
                         "  networks: {\n"
                         f"    {network}: {{url: \"https://...\"}}\n"
                         "  }\n"
                         "}")


class NetworkRequestError(VerifyError):
    def __init__(self, orig: Exception) -> None:
        super().__init__("A network request failed. This is an error from the block explorer or the RPC endpoint, "
                         f"not from the verifier. Error: {orig}", orig=orig)


class ContractVerificationRequestError(VerifyError):
    def __init__(self, url: str, reason: str, orig: Optional[Exception] = None) -> None:
        super().__init__(f"Failed to send contract verification request.\nEndpoint URL: {url}\nReason: {reason}",
                         orig=orig)


class ContractVerificationInvalidStatusCodeError(ContractVerificationRequestError):
    def __init__(self, url: str, status_code: int, response_text: str) -> None:
        super().__init__(url, f"The HTTP server response is not ok. Status code: {status_code} "
                              f"Response text: {response_text}")


class ContractVerificationMissingBytecodeError(ContractVerificationRequestError):
    def __init__(self, url: str, contract_address: str) -> None:
        super().__init__(url, f"The Etherscan API responded that the address {contract_address} does not have "
                              "bytecode.\n"
                              "This can happen if the contract was recently deployed and this fact hasn't propagated "
                              "to the backend yet.\n"
                              "Try waiting for a minute before verifying your contract. If you are invoking this from "
                              "a script,\ntry to wait for five confirmations of your contract deployment transaction "
                              "before running the verification.")


class ContractAlreadyVerifiedError(VerifyError):
    def __init__(self, contract_fqn: str, contract_address: str) -> None:
        super().__init__(f"The block explorer's API responded that the contract {contract_fqn} at {contract_address} "
                         "is already verified.\n"
                         "Re-verification of contracts might not be supported by the explorer, or the contract may "
                         "have already been verified with a full match.")


class ContractStatusPollingError(VerifyError):
    def __init__(self, url: str, reason: str, orig: Optional[Exception] = None) -> None:
        super().__init__("Failure during etherscan status polling. The verification may still succeed but\n"
                         f"should be checked manually.\nEndpoint URL: {url}\nReason: {reason}", orig=orig)


class ContractStatusPollingResponseNotOkError(ContractStatusPollingError):
    def __init__(self, url: str, message: str) -> None:
        super().__init__(url, f"The Etherscan API responded with a failure status: {message}")


class DeployedBytecodeNotFoundError(VerifyError):
    def __init__(self, address: str, network: str) -> None:
        super().__init__(f"The address {address} has no bytecode. Is the contract deployed to this network?\n"
                         f"The selected network is {network}.")


class CompilerVersionsMismatchError(VerifyError):
    def __init__(self, config_compiler_versions: List[str], inferred_compiler_version: str, network: str) -> None:
        if len(config_compiler_versions) > 1:
            version_details = f"versions are: {', '.join(config_compiler_versions)}"
        elif config_compiler_versions:
            version_details = f"version is: {config_compiler_versions[0]}"
        else:
            version_details = "versions list is empty"
        super().__init__(f"The contract you want to verify was compiled with solidity {inferred_compiler_version}, "
                         f"but your configured compiler {version_details}.\n\n"
                         "Possible causes are:\n"
                         "- You are not in the same commit that was used to deploy the contract.\n"
                         "- Wrong compiler version selected in the solidity section of the conf file.\n"
                         "- The given address is wrong.\n"
                         f"- The selected network ({network}) is wrong.")


class ContractNotFoundError(VerifyError):
    def __init__(self, contract_fqn: str) -> None:
        super().__init__(f"The contract {contract_fqn} is not present in your project.")


class BuildInfoNotFoundError(VerifyError):
    def __init__(self, contract_fqn: str) -> None:
        super().__init__(f"The contract {contract_fqn} is present in your project, but we couldn't find its "
                         "sources.\nPlease make sure that it has been compiled and that it is written in Solidity.")


class BuildInfoCompilerVersionMismatchError(VerifyError):
    def __init__(self, contract_fqn: str, compiler_version: str, is_version_range: bool,
                 build_info_compiler_version: str, network: str) -> None:
        if is_version_range:
            version_details = f"a solidity version in the range {compiler_version}"
        else:
            version_details = f"the solidity version {compiler_version}"
        super().__init__(f"The contract {contract_fqn} is being compiled with {build_info_compiler_version}.\n"
                         "However, the contract found in the address provided as argument has its bytecode marked "
                         f"with {version_details}.\n\n"
                         "Possible causes are:\n"
                         "- Solidity compiler version settings were modified after the deployment was executed.\n"
                         "- The given address is wrong.\n"
                         f"- The selected network ({network}) is wrong.")


def bytecode_mismatch_causes(network: str) -> str:
    return ("Possible causes are:\n"
            "- The artifact for that contract is outdated or missing. You can try compiling the project again "
            "before re-running the verification.\n"
            "- The contract's code changed after the deployment was executed. Sometimes this happens by changes in "
            "seemingly unrelated contracts.\n"
            "- The solidity compiler settings were modified after the deployment was executed (like the optimizer, "
            "target EVM, etc.)\n"
            "- The given address is wrong.\n"
            f"- The selected network ({network}) is wrong.")


class DeployedBytecodeMismatchError(VerifyError):
    def __init__(self, network: str, contract_fqn: str) -> None:
        super().__init__("The address provided as argument contains a contract, but its bytecode doesn't match the "
                         f"contract {contract_fqn}.\n\n{bytecode_mismatch_causes(network)}")


class DeployedBytecodeNotMatchedError(VerifyError):
    def __init__(self, network: str) -> None:
        super().__init__("The address provided as argument contains a contract, but its bytecode doesn't match any "
                         f"of your local contracts.\n\n{bytecode_mismatch_causes(network)}")


class DeployedBytecodeMultipleMatchesError(VerifyError):
    def __init__(self, fqn_matches: List[str]) -> None:
        self.fqn_matches = fqn_matches
        super().__init__("More than one contract was found to match the deployed bytecode.\n"
                         "Please use the contract flag with one of the following contracts:\n"
                         f"{bullet_list(fqn_matches)}\n\n"
                         f"For example:\n\n{CONTRACT_FLAG_EXAMPLE}")


class UnexpectedNumberOfFilesError(VerifyError):
    def __init__(self, source_name: str, count: int) -> None:
        super().__init__(f"Found {count} files named {source_name} in the dependency closure of the contract, "
                         "expected exactly one. Please report this issue to the verifier maintainers.")


class VerificationAPIUnexpectedMessageError(VerifyError):
    def __init__(self, message: str) -> None:
        super().__init__("The API responded with an unexpected message.\n"
                         "Contract verification may have succeeded and should be checked manually.\n"
                         f"Message: {message}")


class ContractVerificationFailedError(VerifyError):
    def __init__(self, message: str, undetectable_libraries: List[str]) -> None:
        self.reason = message
        self.undetectable_libraries = undetectable_libraries
        libraries_details = ""
        if undetectable_libraries:
            libraries_details = "\nThis contract makes use of libraries whose addresses are undetectable by the " \
                                "verifier.\nKeep in mind that this verification failure may be due to passing in " \
                                "the wrong\naddress for one of these libraries:\n" + \
                                bullet_list(undetectable_libraries)
        super().__init__(f"The contract verification failed.\nReason: {message}\n{libraries_details}")


class SourcifyVerificationError(VerifyError):
    def __init__(self, url: str, reason: str, orig: Optional[Exception] = None) -> None:
        super().__init__(f"Failed to send the Sourcify verification request.\nEndpoint URL: {url}\nReason: {reason}",
                         orig=orig)


class MissingMetadataError(VerifyError):
    def __init__(self, contract_fqn: str) -> None:
        super().__init__(f"The compiler output of {contract_fqn} has no metadata, which Sourcify requires. Make sure "
                         "\"metadata\" is part of the outputSelection of your compiler settings.")


class VerificationSubtasksFailedError(VerifyError):
    def __init__(self, failed_subtasks: List[str]) -> None:
        super().__init__(f"Verification failed for: {', '.join(failed_subtasks)}")
