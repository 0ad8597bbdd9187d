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
import time
import logging
import itertools
from pathlib import Path
from typing import Any, List, Optional

import requests

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier.verifierBytecode import Bytecode
from ContractVerifier.verifierErrors import DeployedBytecodeNotFoundError, NetworkRequestError

rpc_logger = logging.getLogger("rpc")

RPC_REQUEST_RETRIES = 3
RPC_REQUEST_SLEEP = 2
RPC_TIMEOUT = 30
EMPTY_CODE = ("", "0x", "0x0")


class JsonRpcProvider:
    """A minimal JSON-RPC client of an Ethereum node"""

    def __init__(self, url: str, network: str, session: Optional[requests.Session] = None,
                 retries: int = RPC_REQUEST_RETRIES, retry_sleep: float = RPC_REQUEST_SLEEP) -> None:
        self.url = url
        self.network = network
        self.session = session if session is not None else requests.Session()
        self.retries = retries
        self.retry_sleep = retry_sleep
        self._request_ids = itertools.count(1)

    def send(self, method: str, params: List[Any]) -> Any:
        """
        Sends a JSON-RPC request, retrying on timeouts, connection errors and 5XX responses
        @raise NetworkRequestError: the node could not be reached or answered with an error
        """
        payload = {"jsonrpc": "2.0", "id": next(self._request_ids), "method": method, "params": params}
        last_error: Optional[Exception] = None
        for i in range(self.retries):
            try:
                rpc_logger.debug(f"sending {method} to {self.network}")
                response = self.session.post(self.url, json=payload, timeout=RPC_TIMEOUT)
                if response.status_code >= 500:
                    last_error = requests.exceptions.HTTPError(f"{response.status_code} received from {self.url}")
                    rpc_logger.debug(f'{response.status_code} received. Retry...')
                else:
                    response.raise_for_status()
                    json_response = response.json()
                    if "error" in json_response:
                        error = json_response["error"]
                        raise NetworkRequestError(RuntimeError(f"{method} failed: {error.get('message', error)}"))
                    return json_response.get("result")
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                rpc_logger.debug(f"{method} request to {self.network} failed: {e}. Retry...")
                last_error = e
            except (requests.exceptions.RequestException, ValueError) as e:
                raise NetworkRequestError(e)
            if i < self.retries - 1:
                time.sleep(self.retry_sleep)
        raise NetworkRequestError(last_error if last_error is not None else RuntimeError(f"{method} failed"))

    def get_chain_id(self) -> int:
        return int(self.send("eth_chainId", []), 16)

    def get_code(self, address: str) -> str:
        return self.send("eth_getCode", [address, "latest"])


def get_deployed_bytecode(provider: JsonRpcProvider, address: str) -> Bytecode:
    """
    @raise DeployedBytecodeNotFoundError: there is no contract at the address
    """
    code = provider.get_code(address)
    if code is None or code in EMPTY_CODE:
        raise DeployedBytecodeNotFoundError(address, provider.network)
    rpc_logger.debug(f"found {(len(code) - 2) // 2} bytes of code at {address}")
    return Bytecode(code)
