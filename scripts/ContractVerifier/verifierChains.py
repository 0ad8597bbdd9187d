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
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier.verifierErrors import ChainConfigNotFoundError, NetworkNotSupportedError

# the in-process network of the build tool, there is no explorer for it
LOCAL_NETWORK_NAMES = ("hardhat", "localhost")


@dataclass(frozen=True)
class ChainConfig:
    network: str
    chain_id: int
    api_url: str
    browser_url: str

    @classmethod
    def from_conf(cls, chain: Dict[str, Any]) -> "ChainConfig":
        return cls(chain["network"], chain["chainId"], chain["urls"]["apiURL"], chain["urls"]["browserURL"])


BUILTIN_CHAINS: List[ChainConfig] = [
    ChainConfig("mainnet", 1, "https://api.etherscan.io/api", "https://etherscan.io"),
    ChainConfig("goerli", 5, "https://api-goerli.etherscan.io/api", "https://goerli.etherscan.io"),
    ChainConfig("optimisticEthereum", 10, "https://api-optimistic.etherscan.io/api",
                "https://optimistic.etherscan.io/"),
    ChainConfig("bsc", 56, "https://api.bscscan.com/api", "https://bscscan.com"),
    ChainConfig("sokol", 77, "https://blockscout.com/poa/sokol/api", "https://blockscout.com/poa/sokol"),
    ChainConfig("bscTestnet", 97, "https://api-testnet.bscscan.com/api", "https://testnet.bscscan.com"),
    ChainConfig("xdai", 100, "https://api.gnosisscan.io/api", "https://gnosisscan.io"),
    ChainConfig("gnosis", 100, "https://api.gnosisscan.io/api", "https://gnosisscan.io"),
    ChainConfig("heco", 128, "https://api.hecoinfo.com/api", "https://hecoinfo.com"),
    ChainConfig("polygon", 137, "https://api.polygonscan.com/api", "https://polygonscan.com"),
    ChainConfig("opera", 250, "https://api.ftmscan.com/api", "https://ftmscan.com"),
    ChainConfig("hecoTestnet", 256, "https://api-testnet.hecoinfo.com/api", "https://testnet.hecoinfo.com"),
    ChainConfig("optimisticGoerli", 420, "https://api-goerli-optimistic.etherscan.io/api",
                "https://goerli-optimism.etherscan.io/"),
    ChainConfig("polygonZkEVM", 1101, "https://api-zkevm.polygonscan.com/api", "https://zkevm.polygonscan.com"),
    ChainConfig("moonbeam", 1284, "https://api-moonbeam.moonscan.io/api", "https://moonbeam.moonscan.io"),
    ChainConfig("moonriver", 1285, "https://api-moonriver.moonscan.io/api", "https://moonriver.moonscan.io"),
    ChainConfig("moonbaseAlpha", 1287, "https://api-moonbase.moonscan.io/api", "https://moonbase.moonscan.io/"),
    ChainConfig("polygonZkEVMTestnet", 1442, "https://api-testnet-zkevm.polygonscan.com/api",
                "https://testnet-zkevm.polygonscan.com"),
    ChainConfig("ftmTestnet", 4002, "https://api-testnet.ftmscan.com/api", "https://testnet.ftmscan.com"),
    ChainConfig("base", 8453, "https://api.basescan.org/api", "https://basescan.org/"),
    ChainConfig("chiado", 10200, "https://gnosis-chiado.blockscout.com/api", "https://gnosis-chiado.blockscout.com"),
    ChainConfig("holesky", 17000, "https://api-holesky.etherscan.io/api", "https://holesky.etherscan.io"),
    ChainConfig("arbitrumOne", 42161, "https://api.arbiscan.io/api", "https://arbiscan.io/"),
    ChainConfig("arbitrumNova", 42170, "https://api-nova.arbiscan.io/api", "https://nova.arbiscan.io/"),
    ChainConfig("celo", 42220, "https://api.celoscan.io/api", "https://celoscan.io/"),
    ChainConfig("avalancheFujiTestnet", 43113, "https://api-testnet.snowtrace.io/api", "https://testnet.snowtrace.io"),
    ChainConfig("avalanche", 43114, "https://api.snowtrace.io/api", "https://snowtrace.io"),
    ChainConfig("celoAlfajores", 44787, "https://api-alfajores.celoscan.io/api", "https://alfajores.celoscan.io/"),
    ChainConfig("polygonMumbai", 80001, "https://api-testnet.polygonscan.com/api", "https://mumbai.polygonscan.com/"),
    ChainConfig("baseGoerli", 84531, "https://api-goerli.basescan.org/api", "https://goerli.basescan.org/"),
    ChainConfig("arbitrumTestnet", 421611, "https://api-testnet.arbiscan.io/api", "https://testnet.arbiscan.io/"),
    ChainConfig("arbitrumGoerli", 421613, "https://api-goerli.arbiscan.io/api", "https://goerli.arbiscan.io/"),
    ChainConfig("arbitrumSepolia", 421614, "https://api-sepolia.arbiscan.io/api", "https://sepolia.arbiscan.io/"),
    ChainConfig("aurora", 1313161554, "https://explorer.mainnet.aurora.dev/api", "https://aurora.dev"),
    ChainConfig("auroraTestnet", 1313161555, "https://explorer.testnet.aurora.dev/api",
                "https://testnet.aurora.dev"),
    ChainConfig("harmony", 1666600000, "https://ctrver.t.hmny.io/verify", "https://explorer.harmony.one"),
    ChainConfig("harmonyTest", 1666700000, "https://ctrver.t.hmny.io/verify?network=testnet",
                "https://explorer.pops.one"),
    ChainConfig("sepolia", 11155111, "https://api-sepolia.etherscan.io/api", "https://sepolia.etherscan.io"),
]


def get_current_chain_config(network: str, chain_id: int,
                             custom_chains: Sequence[ChainConfig] = ()) -> ChainConfig:
    """
    @param chain_id: the chain id reported by the RPC endpoint of the network
    @return: the explorer of the chain. Custom chains come first, the last defined custom chain wins
    @raise NetworkNotSupportedError: the network is the local network of the build tool
    @raise ChainConfigNotFoundError: no known explorer for this chain
    """
    for chain in list(reversed(custom_chains)) + BUILTIN_CHAINS:
        if chain.chain_id == chain_id:
            return chain
    if network in LOCAL_NETWORK_NAMES:
        raise NetworkNotSupportedError(network)
    raise ChainConfigNotFoundError(chain_id)


def print_supported_networks(custom_chains: Sequence[ChainConfig] = ()) -> None:
    table = Table(show_lines=False, header_style="bold")
    table.add_column(Text("network"), no_wrap=True)
    table.add_column(Text("chain id"), justify="right")
    for chain in sorted(BUILTIN_CHAINS, key=lambda c: c.network.lower()):
        table.add_row(chain.network, str(chain.chain_id))

    console = Console()
    console.print("Networks supported by the verifier:", style="bold")
    console.print(table)

    if custom_chains:
        custom_table = Table(show_lines=False, header_style="bold")
        custom_table.add_column(Text("network"), no_wrap=True)
        custom_table.add_column(Text("chain id"), justify="right")
        for chain in custom_chains:
            custom_table.add_row(chain.network, str(chain.chain_id))
        console.print("Custom networks from the conf file:", style="bold")
        console.print(custom_table)
