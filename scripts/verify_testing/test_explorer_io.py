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
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

sys.path.insert(0, str(Path(__file__).parent.resolve()))  # containing directory
sys.path.insert(0, str(Path(__file__).parent.parent.resolve()))  # scripts directory

from ContractVerifier import verifierExplorerIO as ExplorerIO
from ContractVerifier.verifierChains import ChainConfig
from ContractVerifier.verifierErrors import ContractAlreadyVerifiedError, ContractStatusPollingError, \
    ContractStatusPollingResponseNotOkError, ContractVerificationInvalidStatusCodeError, \
    ContractVerificationMissingBytecodeError, ContractVerificationRequestError, DeployedBytecodeNotFoundError, \
    MissingApiKeyError, NetworkRequestError, SourcifyVerificationError
from ContractVerifier.verifierExplorerIO import Etherscan, EtherscanResponse
from ContractVerifier.verifierRpc import JsonRpcProvider, get_deployed_bytecode
from ContractVerifier.verifierSourcifyIO import Sourcify
from verifierTestFixtures import CONTRACT_ADDRESS, SEPOLIA_CHAIN_ID, mock_http_response

API_URL = "https://api-sepolia.etherscan.io/api"
BROWSER_URL = "https://sepolia.etherscan.io"


def make_etherscan(session: MagicMock, max_poll_minutes: float = ExplorerIO.MAX_POLLING_TIME_MINUTES) -> Etherscan:
    return Etherscan("key", API_URL, BROWSER_URL, session, polling_seconds=0, max_poll_minutes=max_poll_minutes)


def status_response(status: str, result: str) -> MagicMock:
    return mock_http_response({"status": status, "message": "OK" if status == "1" else "NOTOK", "result": result})


class TestApiKey(unittest.TestCase):
    def test_single_key(self) -> None:
        self.assertEqual(ExplorerIO.resolve_api_key("abc", "sepolia"), "abc")

    def test_key_per_network(self) -> None:
        self.assertEqual(ExplorerIO.resolve_api_key({"sepolia": "abc", "mainnet": "def"}, "mainnet"), "def")

    def test_missing_key(self) -> None:
        with self.assertRaises(MissingApiKeyError):
            ExplorerIO.resolve_api_key({"mainnet": "def"}, "sepolia")
        with self.assertRaises(MissingApiKeyError):
            ExplorerIO.resolve_api_key(None, "sepolia")

    def test_from_chain_config(self) -> None:
        chain = ChainConfig("sepolia", SEPOLIA_CHAIN_ID, API_URL, BROWSER_URL + "/")
        etherscan = Etherscan.from_chain_config({"sepolia": "abc"}, chain, MagicMock())
        self.assertEqual(etherscan.api_key, "abc")
        self.assertEqual(etherscan.get_contract_url(CONTRACT_ADDRESS),
                         f"{BROWSER_URL}/address/{CONTRACT_ADDRESS}#code")


class TestEtherscanResponse(unittest.TestCase):
    def test_failure_prefix(self) -> None:
        response = EtherscanResponse({"status": "0", "result": "Fail - Unable to verify. Bytecode mismatch"})
        self.assertTrue(response.is_verification_failure())
        self.assertFalse(response.is_verification_success())
        self.assertFalse(response.is_ok())

    def test_malformed_status(self) -> None:
        response = EtherscanResponse({"status": "??", "result": "Pending in queue"})
        self.assertEqual(response.status, 0)
        self.assertTrue(response.is_pending())


class TestEtherscanSubmission(unittest.TestCase):
    def test_submission(self) -> None:
        session = MagicMock()
        session.post.return_value = status_response("1", "guid-1")
        response = make_etherscan(session).verify(CONTRACT_ADDRESS, "{}", "contracts/Token.sol:Token",
                                                  "v0.8.19+commit.7dd6d404", "00ff")
        self.assertEqual(response.message, "guid-1")

        data = session.post.call_args.kwargs["data"]
        self.assertEqual(data["action"], "verifysourcecode")
        self.assertEqual(data["codeformat"], "solidity-standard-json-input")
        self.assertEqual(data["constructorArguements"], "00ff")
        self.assertEqual(data["contractaddress"], CONTRACT_ADDRESS)

    def test_missing_bytecode(self) -> None:
        session = MagicMock()
        session.post.return_value = status_response("0", f"Unable to locate ContractCode at {CONTRACT_ADDRESS}")
        with self.assertRaises(ContractVerificationMissingBytecodeError):
            make_etherscan(session).verify(CONTRACT_ADDRESS, "{}", "A.sol:A", "v0.8.19", "")

    def test_already_verified(self) -> None:
        session = MagicMock()
        session.post.return_value = status_response("0", "Contract source code already verified")
        with self.assertRaises(ContractAlreadyVerifiedError):
            make_etherscan(session).verify(CONTRACT_ADDRESS, "{}", "A.sol:A", "v0.8.19", "")

    def test_not_ok(self) -> None:
        session = MagicMock()
        session.post.return_value = status_response("0", "Invalid API Key")
        with self.assertRaises(ContractVerificationRequestError) as cm:
            make_etherscan(session).verify(CONTRACT_ADDRESS, "{}", "A.sol:A", "v0.8.19", "")
        self.assertIn("Invalid API Key", str(cm.exception))

    def test_http_error_is_not_retried(self) -> None:
        session = MagicMock()
        session.post.return_value = mock_http_response({}, status_code=502)
        with self.assertRaises(ContractVerificationInvalidStatusCodeError):
            make_etherscan(session).verify(CONTRACT_ADDRESS, "{}", "A.sol:A", "v0.8.19", "")
        self.assertEqual(session.post.call_count, 1)

    def test_connection_error(self) -> None:
        session = MagicMock()
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaises(ContractVerificationRequestError):
            make_etherscan(session).verify(CONTRACT_ADDRESS, "{}", "A.sol:A", "v0.8.19", "")


class TestEtherscanStatus(unittest.TestCase):
    def test_pending_then_verified(self) -> None:
        session = MagicMock()
        session.get.side_effect = [status_response("0", "Pending in queue"), status_response("1", "Pass - Verified")]
        response = make_etherscan(session).get_verification_status("guid-1")
        self.assertTrue(response.is_verification_success())
        self.assertEqual(session.get.call_count, 2)
        self.assertEqual(session.get.call_args.kwargs["params"]["guid"], "guid-1")

    def test_failure_is_returned(self) -> None:
        session = MagicMock()
        session.get.return_value = status_response("0", "Fail - Unable to verify")
        self.assertTrue(make_etherscan(session).get_verification_status("guid-1").is_verification_failure())

    def test_not_ok(self) -> None:
        session = MagicMock()
        session.get.return_value = status_response("0", "Unknown UID")
        with self.assertRaises(ContractStatusPollingResponseNotOkError):
            make_etherscan(session).get_verification_status("guid-1")

    def test_pending_for_too_long(self) -> None:
        session = MagicMock()
        session.get.return_value = status_response("0", "Pending in queue")
        with self.assertRaises(ContractStatusPollingError):
            make_etherscan(session, max_poll_minutes=0).get_verification_status("guid-1")

    @patch.object(ExplorerIO.time, "sleep")
    def test_server_errors_are_retried(self, sleep: MagicMock) -> None:
        session = MagicMock()
        session.get.side_effect = [mock_http_response({}, status_code=503), status_response("1", "Pass - Verified")]
        self.assertTrue(make_etherscan(session).get_verification_status("guid-1").is_verification_success())
        self.assertEqual(session.get.call_count, 2)

    @patch.object(ExplorerIO.time, "sleep")
    def test_out_of_retries(self, sleep: MagicMock) -> None:
        session = MagicMock()
        session.get.side_effect = requests.exceptions.Timeout("slow")
        with self.assertRaises(ContractStatusPollingError):
            make_etherscan(session).get_verification_status("guid-1")
        self.assertEqual(session.get.call_count, ExplorerIO.GET_REQUEST_RETRIES)


class TestEtherscanIsVerified(unittest.TestCase):
    def test_verified(self) -> None:
        session = MagicMock()
        session.get.return_value = mock_http_response({"status": "1", "message": "OK",
                                                       "result": [{"SourceCode": "contract A {}"}]})
        self.assertTrue(make_etherscan(session).is_verified(CONTRACT_ADDRESS))

    def test_not_verified(self) -> None:
        session = MagicMock()
        session.get.return_value = mock_http_response({"status": "1", "message": "OK",
                                                       "result": [{"SourceCode": ""}]})
        self.assertFalse(make_etherscan(session).is_verified(CONTRACT_ADDRESS))

    def test_error_message(self) -> None:
        session = MagicMock()
        session.get.return_value = mock_http_response({"status": "0", "message": "NOTOK", "result": "Invalid"})
        self.assertFalse(make_etherscan(session).is_verified(CONTRACT_ADDRESS))

    def test_client_error(self) -> None:
        session = MagicMock()
        response = mock_http_response({}, status_code=403)
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("403 Forbidden")
        session.get.return_value = response
        with self.assertRaises(NetworkRequestError):
            make_etherscan(session).is_verified(CONTRACT_ADDRESS)


class TestSourcify(unittest.TestCase):
    def test_is_verified(self) -> None:
        session = MagicMock()
        session.get.return_value = mock_http_response([{
            "address": CONTRACT_ADDRESS,
            "chainIds": [{"chainId": "1", "status": "partial"}, {"chainId": str(SEPOLIA_CHAIN_ID), "status": "perfect"}]
        }])
        self.assertEqual(Sourcify(SEPOLIA_CHAIN_ID, session=session).is_verified(CONTRACT_ADDRESS), "perfect")

    def test_is_not_verified(self) -> None:
        session = MagicMock()
        session.get.return_value = mock_http_response([{"address": CONTRACT_ADDRESS, "status": "false"}])
        self.assertFalse(Sourcify(SEPOLIA_CHAIN_ID, session=session).is_verified(CONTRACT_ADDRESS))

    def test_verify(self) -> None:
        session = MagicMock()
        session.post.return_value = mock_http_response({"result": [{"address": CONTRACT_ADDRESS,
                                                                    "status": "partial"}]})
        sourcify = Sourcify(SEPOLIA_CHAIN_ID, session=session)
        response = sourcify.verify(CONTRACT_ADDRESS, {"metadata.json": "{}"})
        self.assertEqual(response.get_status(), "partial")
        self.assertEqual(session.post.call_args.kwargs["json"]["chain"], str(SEPOLIA_CHAIN_ID))
        self.assertEqual(sourcify.get_contract_url(CONTRACT_ADDRESS, "partial"),
                         f"https://repo.sourcify.dev/contracts/partial_match/{SEPOLIA_CHAIN_ID}/{CONTRACT_ADDRESS}/")

    def test_rejected(self) -> None:
        session = MagicMock()
        session.post.return_value = mock_http_response({"error": "Metadata file not found"}, status_code=400)
        with self.assertRaises(SourcifyVerificationError) as cm:
            Sourcify(SEPOLIA_CHAIN_ID, session=session).verify(CONTRACT_ADDRESS, {})
        self.assertIn("Metadata file not found", str(cm.exception))


class TestJsonRpc(unittest.TestCase):
    def test_chain_id(self) -> None:
        session = MagicMock()
        session.post.return_value = mock_http_response({"jsonrpc": "2.0", "id": 1, "result": "0xaa36a7"})
        provider = JsonRpcProvider("http://localhost:8545", "sepolia", session)
        self.assertEqual(provider.get_chain_id(), SEPOLIA_CHAIN_ID)
        self.assertEqual(session.post.call_args.kwargs["json"]["method"], "eth_chainId")

    def test_rpc_error(self) -> None:
        session = MagicMock()
        session.post.return_value = mock_http_response({"jsonrpc": "2.0", "id": 1,
                                                        "error": {"code": -32000, "message": "header not found"}})
        provider = JsonRpcProvider("http://localhost:8545", "sepolia", session)
        with self.assertRaises(NetworkRequestError) as cm:
            provider.get_code(CONTRACT_ADDRESS)
        self.assertIn("header not found", str(cm.exception))
        self.assertEqual(session.post.call_count, 1)

    def test_retries(self) -> None:
        session = MagicMock()
        session.post.side_effect = [requests.exceptions.ConnectionError("reset"),
                                    mock_http_response({"jsonrpc": "2.0", "id": 2, "result": "0x6080"})]
        provider = JsonRpcProvider("http://localhost:8545", "sepolia", session, retry_sleep=0)
        self.assertEqual(get_deployed_bytecode(provider, CONTRACT_ADDRESS).get_bytes(), b"\x60\x80")

    def test_no_code(self) -> None:
        session = MagicMock()
        session.post.return_value = mock_http_response({"jsonrpc": "2.0", "id": 1, "result": "0x"})
        provider = JsonRpcProvider("http://localhost:8545", "sepolia", session)
        with self.assertRaises(DeployedBytecodeNotFoundError):
            get_deployed_bytecode(provider, CONTRACT_ADDRESS)


if __name__ == '__main__':
    unittest.main()
