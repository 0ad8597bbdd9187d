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

sys.path.insert(0, str(Path(__file__).parent.parent.resolve()))  # scripts directory

from ContractVerifier import verifierChains as Chains
from ContractVerifier.verifierChains import ChainConfig
from ContractVerifier.verifierErrors import ChainConfigNotFoundError, NetworkNotSupportedError

CUSTOM_CHAIN = {
    "network": "myChain",
    "chainId": 123456,
    "urls": {"apiURL": "https://explorer.mychain.io/api", "browserURL": "https://explorer.mychain.io"}
}


class TestChains(unittest.TestCase):
    def test_builtin_chain(self) -> None:
        chain = Chains.get_current_chain_config("sepolia", 11155111)
        self.assertEqual(chain.api_url, "https://api-sepolia.etherscan.io/api")
        self.assertEqual(chain.browser_url, "https://sepolia.etherscan.io")

    def test_chain_is_found_by_id(self) -> None:
        self.assertEqual(Chains.get_current_chain_config("myMainnetFork", 1).network, "mainnet")

    def test_custom_chain(self) -> None:
        custom_chain = ChainConfig.from_conf(CUSTOM_CHAIN)
        self.assertEqual(Chains.get_current_chain_config("myChain", 123456, [custom_chain]), custom_chain)

    def test_custom_chains_shadow_builtin_chains(self) -> None:
        first = ChainConfig("fork", 1, "https://first.io/api", "https://first.io")
        last = ChainConfig("fork", 1, "https://last.io/api", "https://last.io")
        self.assertEqual(Chains.get_current_chain_config("fork", 1, [first, last]), last)

    def test_unknown_chain(self) -> None:
        with self.assertRaises(ChainConfigNotFoundError):
            Chains.get_current_chain_config("myChain", 123456)

    def test_local_network(self) -> None:
        with self.assertRaises(NetworkNotSupportedError):
            Chains.get_current_chain_config("hardhat", 31337)


if __name__ == '__main__':
    unittest.main()
