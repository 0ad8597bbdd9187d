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

import os
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Dict, List, Tuple
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.resolve()))  # containing directory
sys.path.insert(0, str(Path(__file__).parent.parent.resolve()))  # scripts directory

from ContractVerifier import verifierContext as Ctx
from ContractVerifier.verifierArtifacts import DEFAULT_BUILD_INFO_DIR
from ContractVerifier.verifierChains import ChainConfig
from ContractVerifier.verifierContext import VerifierConfig, VerifyTaskArgs
from Shared import verifierUtils as Util
from verifierTestFixtures import CONTRACT_ADDRESS

SEPOLIA_RPC = "https://rpc.sepolia.org"

CONF_CONTENT = """
// the verification settings of the project
{
    network: "sepolia",
    networks: {
        sepolia: {url: "%s"},
    },
    etherscan: {
        apiKey: {sepolia: "conf-key"},
        customChains: [
            {network: "myChain", chainId: 123456,
             urls: {apiURL: "https://explorer.mychain.io/api", browserURL: "https://explorer.mychain.io"}},
        ],
    },
    sourcify: {enabled: true},
    solidity: {compilers: [{version: "0.8.19"}], overrides: {"contracts/Old.sol": {version: "0.7.6"}}},
}
""" % SEPOLIA_RPC


class TestContext(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = tempfile.TemporaryDirectory()
        # the api key of the environment of the test run must not leak into the configuration
        self.env = patch.dict(os.environ, {}, clear=False)
        self.env.start()
        os.environ.pop(Util.ENVVAR_ETHERSCAN_API_KEY, None)

    def tearDown(self) -> None:
        self.env.stop()
        self.tmp_dir.cleanup()

    def write_conf(self, content: str, name: str = "verify.conf") -> str:
        path = Path(self.tmp_dir.name) / name
        path.write_text(content)
        return str(path)

    @staticmethod
    def get_config(args: List[str]) -> Tuple[VerifierConfig, VerifyTaskArgs]:
        return Ctx.get_config(args)

    def test_defaults(self) -> None:
        config, task_args = self.get_config([CONTRACT_ADDRESS])
        self.assertEqual(config.network.name, Ctx.DEFAULT_NETWORK)
        self.assertIsNone(config.network.url)
        self.assertIsNone(config.etherscan.api_key)
        self.assertTrue(config.etherscan.enabled)
        self.assertFalse(config.sourcify.enabled)
        self.assertEqual(config.build_info_dir, DEFAULT_BUILD_INFO_DIR)
        self.assertEqual(task_args.address, CONTRACT_ADDRESS)
        self.assertEqual(task_args.constructor_args_params, ())
        self.assertFalse(task_args.list_networks)

    def test_positional_constructor_arguments(self) -> None:
        _, task_args = self.get_config(["--network", "sepolia", CONTRACT_ADDRESS, "1000", "My Token"])
        self.assertEqual(task_args.address, CONTRACT_ADDRESS)
        self.assertEqual(task_args.constructor_args_params, ("1000", "My Token"))

    def test_flags(self) -> None:
        build_info_dir = Path(self.tmp_dir.name) / "build-info"
        build_info_dir.mkdir()
        config, task_args = self.get_config([CONTRACT_ADDRESS, "--network", "sepolia", "--rpc_url", SEPOLIA_RPC,
                                             "--contract", "contracts/Token.sol:Token",
                                             "--build_info_dir", str(build_info_dir),
                                             "--etherscan_api_key", "flag-key"])
        self.assertEqual(config.network.name, "sepolia")
        self.assertEqual(config.network.url, SEPOLIA_RPC)
        self.assertEqual(config.etherscan.api_key, "flag-key")
        self.assertEqual(config.build_info_dir, build_info_dir)
        self.assertEqual(task_args.contract, "contracts/Token.sol:Token")

    def test_debug_topics_are_flattened(self) -> None:
        config, _ = self.get_config(["--list_networks", "--debug", "--debug_topics", "rpc", "explorer",
                                     "--debug_topics", "run"])
        self.assertTrue(config.debug)
        self.assertEqual(config.debug_topics, ("rpc", "explorer", "run"))

    def test_api_key_from_environment(self) -> None:
        os.environ[Util.ENVVAR_ETHERSCAN_API_KEY] = "env-key"
        config, _ = self.get_config([CONTRACT_ADDRESS])
        self.assertEqual(config.etherscan.api_key, "env-key")
        config, _ = self.get_config([CONTRACT_ADDRESS, "--etherscan_api_key", "flag-key"])
        self.assertEqual(config.etherscan.api_key, "flag-key")

    def test_conf_file(self) -> None:
        config, task_args = self.get_config([CONTRACT_ADDRESS, "--conf", self.write_conf(CONF_CONTENT)])
        self.assertEqual(config.network.name, "sepolia")
        self.assertEqual(config.network.url, SEPOLIA_RPC)
        self.assertEqual(config.etherscan.api_key, {"sepolia": "conf-key"})
        self.assertEqual(config.etherscan.custom_chains, (
            ChainConfig("myChain", 123456, "https://explorer.mychain.io/api", "https://explorer.mychain.io"),
        ))
        self.assertTrue(config.sourcify.enabled)
        self.assertEqual(config.solidity["compilers"], [{"version": "0.8.19"}])
        self.assertEqual(task_args.address, CONTRACT_ADDRESS)

    def test_flags_shadow_the_conf_file(self) -> None:
        conf_file = self.write_conf(CONF_CONTENT)
        with self.assertLogs("arguments", level="WARNING") as logs:
            config, _ = self.get_config([CONTRACT_ADDRESS, "--conf", conf_file, "--network", "mainnet",
                                         "--no_sourcify"])
        self.assertEqual(config.network.name, "mainnet")
        self.assertIsNone(config.network.url)
        self.assertFalse(config.sourcify.enabled)
        self.assertTrue(any("overrides value stored in conf file" in line for line in logs.output))

    def test_unknown_conf_key(self) -> None:
        conf_file = self.write_conf("{network: 'sepolia', apiKey: 'misplaced'}")
        with self.assertRaises(Util.VerifierUserInputError) as cm:
            self.get_config([CONTRACT_ADDRESS, "--conf", conf_file])
        self.assertIn("apiKey appears in the conf file but is not a known attribute", str(cm.exception))

    def test_positional_argument_in_conf_file(self) -> None:
        conf_file = self.write_conf(f"{{address: '{CONTRACT_ADDRESS}'}}")
        with self.assertRaises(Util.VerifierUserInputError):
            self.get_config(["--conf", conf_file])

    def test_invalid_conf_section(self) -> None:
        conf_file = self.write_conf("{etherscan: {apiKey: 'abc', customChains: [{network: 'x', chainId: 0}]}}")
        with self.assertRaises(Util.VerifierUserInputError):
            self.get_config([CONTRACT_ADDRESS, "--conf", conf_file])

    def test_conf_file_extension(self) -> None:
        conf_file = self.write_conf(CONF_CONTENT, name="verify.json")
        with self.assertRaises(Util.VerifierUserInputError):
            self.get_config([CONTRACT_ADDRESS, "--conf", conf_file])

    def test_flag_given_twice(self) -> None:
        with self.assertRaises(Util.VerifierUserInputError):
            self.get_config([CONTRACT_ADDRESS, "--network", "sepolia", "--network", "mainnet"])

    def test_single_dash_flag(self) -> None:
        with self.assertRaises(Util.VerifierUserInputError):
            self.get_config([CONTRACT_ADDRESS, "-network", "sepolia"])

    def test_invalid_flag_values(self) -> None:
        invalid_args: Dict[str, str] = {
            "--rpc_url": "not-a-url",
            "--contract": "Token",
            "--network": "my network",
            "--build_info_dir": str(Path(self.tmp_dir.name) / "missing")
        }
        for flag, value in invalid_args.items():
            with self.subTest(flag=flag):
                with self.assertRaises(Util.VerifierUserInputError):
                    self.get_config([CONTRACT_ADDRESS, flag, value])


if __name__ == '__main__':
    unittest.main()
