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
Client of the Etherscan contract verification API, also implemented by most Etherscan-like explorers.
See https://docs.etherscan.io/api-endpoints/contracts
"""

import sys
import time
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier.verifierChains import ChainConfig
from ContractVerifier.verifierErrors import ContractAlreadyVerifiedError, ContractStatusPollingError, \
    ContractStatusPollingResponseNotOkError, ContractVerificationInvalidStatusCodeError, \
    ContractVerificationMissingBytecodeError, ContractVerificationRequestError, MissingApiKeyError, \
    NetworkRequestError
from Shared import verifierUtils as Util

explorer_logger = logging.getLogger("explorer")

VERIFICATION_STATUS_POLLING_SECONDS = 3
MAX_POLLING_TIME_MINUTES = 5
REQUEST_TIMEOUT = 60
GET_REQUEST_RETRIES = 3
GET_REQUEST_SLEEP = 5

PENDING_MESSAGE = "Pending in queue"
VERIFICATION_FAILURE_MESSAGE = "Fail - Unable to verify"
VERIFICATION_SUCCESS_MESSAGE = "Pass - Verified"
MISSING_BYTECODE_MESSAGE = "Unable to locate ContractCode at"
ALREADY_VERIFIED_MESSAGES = ("Contract source code already verified", "Already Verified")

Response = requests.models.Response


def resolve_api_key(api_key: Union[str, Dict[str, str], None], network: str) -> str:
    """
    @param api_key: a single key for all networks, or a map from network name to key
    @raise MissingApiKeyError: there is no key for the network
    """
    if isinstance(api_key, str) and api_key:
        return api_key
    if isinstance(api_key, dict) and api_key.get(network):
        return api_key[network]
    raise MissingApiKeyError(network)


class EtherscanResponse:
    """
    The {status, message, result} answer of the API. For submissions and status checks the interesting text is in
    result, message is just "OK" or "NOTOK"
    """

    def __init__(self, json_response: Dict[str, Any]) -> None:
        try:
            self.status = int(json_response.get("status", 0))
        except (TypeError, ValueError):
            self.status = 0
        result = json_response.get("result", "")
        self.message = result if isinstance(result, str) else str(result)

    def is_pending(self) -> bool:
        return self.message == PENDING_MESSAGE

    def is_verification_failure(self) -> bool:
        return self.message.startswith(VERIFICATION_FAILURE_MESSAGE)

    def is_verification_success(self) -> bool:
        return self.message == VERIFICATION_SUCCESS_MESSAGE

    def is_bytecode_missing_in_network_error(self) -> bool:
        return self.message.startswith(MISSING_BYTECODE_MESSAGE)

    def is_already_verified(self) -> bool:
        return self.message.startswith(ALREADY_VERIFIED_MESSAGES)

    def is_ok(self) -> bool:
        return self.status == 1

    def __repr__(self) -> str:
        return f"EtherscanResponse(status={self.status}, message={self.message!r})"


class Etherscan:
    """Etherscan verification service"""

    def __init__(self, api_key: str, api_url: str, browser_url: str, session: Optional[requests.Session] = None,
                 polling_seconds: float = VERIFICATION_STATUS_POLLING_SECONDS,
                 max_poll_minutes: float = MAX_POLLING_TIME_MINUTES) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.browser_url = browser_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.polling_seconds = polling_seconds
        self.max_poll_minutes = max_poll_minutes

    @classmethod
    def from_chain_config(cls, api_key: Union[str, Dict[str, str], None], chain_config: ChainConfig,
                          session: Optional[requests.Session] = None) -> "Etherscan":
        return cls(resolve_api_key(api_key, chain_config.network), chain_config.api_url, chain_config.browser_url,
                   session)

    def __send_get_request(self, params: Dict[str, str]) -> Dict[str, Any]:
        """
        Retries on timeouts, connection errors and 5XX responses
        @raise NetworkRequestError: on any other failure, or when we ran out of retries
        """
        last_error: Exception = RuntimeError(f"no response from {self.api_url}")
        for i in range(GET_REQUEST_RETRIES):
            try:
                response = self.session.get(self.api_url, params=params, timeout=REQUEST_TIMEOUT)
                if response.status_code >= 500:
                    explorer_logger.debug(f'{response.status_code} received. Retry...')
                    last_error = requests.exceptions.HTTPError(f"{response.status_code}: {response.text}")
                else:
                    response.raise_for_status()
                    return response.json()
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                explorer_logger.debug(f"request to {self.api_url} failed: {e}. Retry...")
                last_error = e
            except (requests.exceptions.RequestException, ValueError) as e:
                raise NetworkRequestError(e)
            if i < GET_REQUEST_RETRIES - 1:
                time.sleep(GET_REQUEST_SLEEP)
        raise NetworkRequestError(last_error)

    def is_verified(self, address: str) -> bool:
        params = {
            "module": "contract",
            "action": "getsourcecode",
            "address": address,
            "apikey": self.api_key
        }
        json_response = self.__send_get_request(params)
        if json_response.get("message") != "OK":
            return False
        result = json_response.get("result")
        if not isinstance(result, list) or not result:
            return False
        source_code = result[0].get("SourceCode")
        return source_code is not None and source_code != ""

    def verify(self, contract_address: str, source_code: str, contract_name: str, compiler_version: str,
               constructor_arguments: str) -> EtherscanResponse:
        """
        Submits the sources for verification
        @param source_code: the standard JSON input, serialized
        @param contract_name: source name and contract name, e.g. contracts/Token.sol:Token
        @param compiler_version: the long compiler version, e.g. v0.8.19+commit.7dd6d404
        @param constructor_arguments: the ABI encoded constructor arguments, hex without the 0x prefix
        @return: a response whose message is the GUID of the submission
        """
        parameters = {
            "apikey": self.api_key,
            "module": "contract",
            "action": "verifysourcecode",
            "contractaddress": contract_address,
            "sourceCode": source_code,
            "codeformat": "solidity-standard-json-input",
            "contractname": contract_name,
            "compilerversion": compiler_version,
            "constructorArguements": constructor_arguments  # sic, this is the name the API expects
        }
        explorer_logger.debug(f"submitting {contract_name} at {contract_address} to {self.api_url}")
        try:
            response = self.session.post(self.api_url, data=parameters, timeout=REQUEST_TIMEOUT)
        except requests.exceptions.RequestException as e:
            raise ContractVerificationRequestError(self.api_url, str(e), orig=e)

        if not response.ok:
            raise ContractVerificationInvalidStatusCodeError(self.api_url, response.status_code, response.text)
        try:
            etherscan_response = EtherscanResponse(response.json())
        except ValueError as e:
            raise ContractVerificationRequestError(self.api_url, f"could not parse the response {response.text}",
                                                   orig=e)
        explorer_logger.debug(f"got {etherscan_response}")

        if etherscan_response.is_bytecode_missing_in_network_error():
            raise ContractVerificationMissingBytecodeError(self.api_url, contract_address)
        if etherscan_response.is_already_verified():
            raise ContractAlreadyVerifiedError(contract_name, contract_address)
        if not etherscan_response.is_ok():
            raise ContractVerificationRequestError(self.api_url, etherscan_response.message)
        return etherscan_response

    def get_verification_status(self, guid: str) -> EtherscanResponse:
        """
        Polls the status of a submission until it is no longer pending
        @return: the final response, success or failure. Callers must still handle other messages
        @raise ContractStatusPollingError: the API reported an error, or the submission is pending for too long
        """
        params = {
            "apikey": self.api_key,
            "module": "contract",
            "action": "checkverifystatus",
            "guid": guid
        }
        start_poll_t = time.perf_counter()
        while True:
            try:
                json_response = self.__send_get_request(params)
            except NetworkRequestError as e:
                raise ContractStatusPollingError(self.api_url, str(e), orig=e)
            etherscan_response = EtherscanResponse(json_response)
            explorer_logger.debug(f"status of {guid}: {etherscan_response}")

            if etherscan_response.is_pending():
                if time.perf_counter() - start_poll_t > self.max_poll_minutes * 60:
                    raise ContractStatusPollingError(self.api_url, f"the verification is pending for more than "
                                                                   f"{self.max_poll_minutes} minutes")
                time.sleep(self.polling_seconds)
                continue
            if etherscan_response.is_verification_failure():
                return etherscan_response
            if not etherscan_response.is_ok():
                raise ContractStatusPollingResponseNotOkError(self.api_url, etherscan_response.message)
            return etherscan_response

    def get_contract_url(self, address: str) -> str:
        return f"{self.browser_url}/address/{address}#code"

    def print_contract_url(self, address: str) -> None:
        Util.CONSOLE.print(f"{Util.print_rich_link(self.get_contract_url(address))}")
