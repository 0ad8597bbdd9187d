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
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier.verifierErrors import NetworkRequestError, SourcifyVerificationError

sourcify_logger = logging.getLogger("sourcify")

SOURCIFY_API_URL = "https://sourcify.dev/server"
SOURCIFY_BROWSER_URL = "https://repo.sourcify.dev"
REQUEST_TIMEOUT = 60

PERFECT_MATCH = "perfect"
PARTIAL_MATCH = "partial"


class SourcifyResponse:
    """
    The answer of the /verify endpoint: either {"result": [{"address": ..., "status": ...}]} or {"error": ...}
    """

    def __init__(self, json_response: Dict[str, Any]) -> None:
        self.error = json_response.get("error")
        self.result = json_response.get("result") or []

    def get_status(self) -> Optional[str]:
        if not self.result:
            return None
        return self.result[0].get("status")

    def is_ok(self) -> bool:
        return self.error is None and self.get_status() in (PERFECT_MATCH, PARTIAL_MATCH)

    def get_error(self) -> str:
        if self.error is not None:
            return str(self.error)
        return f"unexpected status {self.get_status()}"


class Sourcify:
    """Sourcify verification service, keyed by chain id instead of explorer urls"""

    def __init__(self, chain_id: int, api_url: str = SOURCIFY_API_URL, browser_url: str = SOURCIFY_BROWSER_URL,
                 session: Optional[requests.Session] = None) -> None:
        self.chain_id = chain_id
        self.api_url = api_url.rstrip("/")
        self.browser_url = browser_url.rstrip("/")
        self.session = session if session is not None else requests.Session()

    def is_verified(self, address: str) -> Union[str, bool]:
        """
        @return: the match type, "perfect" or "partial", if the address is verified on this chain, False otherwise
        @raise NetworkRequestError: the request failed
        """
        params = {"addresses": address, "chainIds": str(self.chain_id)}
        try:
            response = self.session.get(f"{self.api_url}/check-all-by-addresses", params=params,
                                        timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            json_response = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise NetworkRequestError(e)

        if not isinstance(json_response, list) or not json_response:
            return False
        for chain in json_response[0].get("chainIds", []):
            if str(chain.get("chainId")) == str(self.chain_id):
                return chain.get("status", False)
        return False

    def verify(self, address: str, files: Dict[str, str]) -> SourcifyResponse:
        """
        @param files: file name to content. Must contain metadata.json and every source it lists
        @raise SourcifyVerificationError: the request failed or Sourcify rejected the files
        """
        parameters = {
            "address": address,
            "chain": str(self.chain_id),
            "files": files
        }
        url = f"{self.api_url}/verify"
        sourcify_logger.debug(f"submitting {len(files)} files for {address} to {url}")
        try:
            response = self.session.post(url, json=parameters, timeout=REQUEST_TIMEOUT)
            json_response = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise SourcifyVerificationError(url, str(e), orig=e)

        sourcify_response = SourcifyResponse(json_response)
        if not sourcify_response.is_ok():
            raise SourcifyVerificationError(url, sourcify_response.get_error())
        return sourcify_response

    def get_contract_url(self, address: str, match_type: str) -> str:
        match = "full_match" if match_type == PERFECT_MATCH else "partial_match"
        return f"{self.browser_url}/contracts/{match}/{self.chain_id}/{address}/"
