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

import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import json5
from rich.console import Console

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier.verifierArtifacts import DEFAULT_BUILD_INFO_DIR
from ContractVerifier.verifierAttributes import VerifierAttributes
from ContractVerifier.verifierChains import ChainConfig
from ContractVerifier.verifierSourcifyIO import SOURCIFY_API_URL, SOURCIFY_BROWSER_URL
from Shared import verifierUtils as Util
from Shared import verifierAttrUtil as AttrUtil

context_logger = logging.getLogger("arguments")

DEFAULT_NETWORK = "mainnet"
DOCUMENTATION_URL = "https://docs.etherscan.io/contract-verification"


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    url: Optional[str] = None


@dataclass(frozen=True)
class EtherscanConfig:
    api_key: Union[str, Dict[str, str], None] = None
    custom_chains: Tuple[ChainConfig, ...] = ()
    enabled: bool = True


@dataclass(frozen=True)
class SourcifyConfig:
    enabled: bool = False
    api_url: str = SOURCIFY_API_URL
    browser_url: str = SOURCIFY_BROWSER_URL


@dataclass(frozen=True)
class VerifierConfig:
    """
    Everything the verifier knows about the project and its environment. Built once by get_config
    """
    network: NetworkConfig
    etherscan: EtherscanConfig = field(default_factory=EtherscanConfig)
    sourcify: SourcifyConfig = field(default_factory=SourcifyConfig)
    solidity: Any = None
    build_info_dir: Path = DEFAULT_BUILD_INFO_DIR
    conf_file: Optional[str] = None
    quiet: bool = False
    debug: bool = False
    debug_topics: Tuple[str, ...] = ()
    show_debug_topics: bool = False


@dataclass(frozen=True)
class VerifyTaskArgs:
    """
    The verification request as given by the user, before any resolution
    """
    address: Optional[str] = None
    constructor_args_params: Tuple[str, ...] = ()
    constructor_args: Optional[str] = None
    libraries: Optional[str] = None
    contract: Optional[str] = None
    list_networks: bool = False


class VerifierParser(AttrUtil.ContextAttributeParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)

    def format_help(self) -> str:
        console = Console()
        console.print("\n\nContract verifier - Verifies the source code of deployed contracts on block explorers")
        # Using sys.stdout.write() as print() would color some of the strings here
        sys.stdout.write(f"\n\nUsage: {Util.VERIFY_CONTRACT_APP} <address> [constructor arguments] <Flags>\n\n")

        console.print("Flag Types\n", style="bold underline")

        console.print("1. boolean (B): gets no value, sets flag value to true (false is always the default)")
        console.print("2. string (S): gets a single string as a value, note also numbers are of type string")
        console.print("3. list (L): gets multiple strings as a value, flags may also appear multiple times")
        console.print("4. map (M): collection of key, value pairs, can only be set in a conf file\n\n")

        VerifierAttributes.print_attr_help()
        console.print("\n\nYou can find the documentation of the verification API here: "
                      f"{Util.print_rich_link(DOCUMENTATION_URL)}\n\n")
        return ''


def __get_argparser() -> argparse.ArgumentParser:
    def formatter(prog: Any) -> argparse.HelpFormatter:
        return argparse.HelpFormatter(prog, max_help_position=100, width=200)

    parser = VerifierParser(prog=f"{Util.VERIFY_CONTRACT_APP} arguments and options", allow_abbrev=False,
                            formatter_class=formatter)

    for arg in VerifierAttributes.cli_attribute_list():
        flag = arg.get_flag()
        parser.add_argument(flag, help=arg.help_msg, **arg.argparse_args)
    return parser


def flatten_arg_lists(values: Dict[str, Any]) -> None:
    """
    Flags that may appear several times with several values each are parsed into lists of lists
    """
    for attr in VerifierAttributes.cli_attribute_list():
        key = attr.get_conf_key()
        value = values.get(key)
        if attr.arg_type == AttrUtil.AttrArgType.LIST and isinstance(value, list) and \
                all(isinstance(v, list) for v in value):
            values[key] = [item for sublist in value for item in sublist]


def read_from_conf_file(values: Dict[str, Any]) -> None:
    """
    Reads the conf file and adds each key to the values if it was not set in the command line (command line shadows
    conf data)
    @param values: the options from the command line
    """
    conf_file_path = Path(values["conf"])
    with conf_file_path.open() as conf_file:
        configuration = json5.load(conf_file, allow_duplicate_keys=False)
    try:
        check_conf_content(configuration, values)
    except Util.VerifierUserInputError as e:
        raise Util.VerifierUserInputError(f"Error when reading {conf_file_path}: {str(e)}", e) from None


def check_conf_content(conf: Any, values: Dict[str, Any]) -> None:
    if not isinstance(conf, dict):
        raise Util.VerifierUserInputError("the conf file must hold an object")

    conf_keys = [key for key in VerifierAttributes.all_conf_names()
                 if key != VerifierAttributes.CONF.get_conf_key()]
    for option in conf:
        if option not in conf_keys:
            raise Util.VerifierUserInputError(f"{option} appears in the conf file but is not a known attribute.")
        val = values.get(option)
        if val is None or val is False:
            values[option] = conf[option]
        elif val != conf[option]:
            cli_val = ' '.join(val) if isinstance(val, list) else str(val)
            conf_val = ' '.join(conf[option]) if isinstance(conf[option], list) else str(conf[option])
            context_logger.warning(f"Note: attribute {option} value in CLI ({cli_val}) overrides value stored in conf"
                                   f" file ({conf_val})")


def validate_values(values: Dict[str, Any]) -> None:
    for attr in VerifierAttributes.attribute_list():
        if attr.positional:
            continue
        value = values.get(attr.get_conf_key())
        if value is None or value is False:
            continue
        attr.validate_value(value, cli_flag=not attr.conf_only)


def build_config(values: Dict[str, Any]) -> VerifierConfig:
    network_name = values.get("network") or DEFAULT_NETWORK
    network_conf = (values.get("networks") or {}).get(network_name, {})
    network = NetworkConfig(name=network_name,
                            url=values.get("rpc_url") or network_conf.get("url"))

    etherscan_conf = values.get("etherscan") or {}
    api_key = values.get("etherscan_api_key") or etherscan_conf.get("apiKey") or \
        os.environ.get(Util.ENVVAR_ETHERSCAN_API_KEY)
    etherscan = EtherscanConfig(api_key=api_key,
                                custom_chains=tuple(ChainConfig.from_conf(chain)
                                                    for chain in etherscan_conf.get("customChains", [])),
                                enabled=etherscan_conf.get("enabled", True))

    sourcify_conf = values.get("sourcify") or {}
    sourcify = SourcifyConfig(enabled=sourcify_conf.get("enabled", False) and not values.get("no_sourcify"),
                              api_url=sourcify_conf.get("apiUrl", SOURCIFY_API_URL),
                              browser_url=sourcify_conf.get("browserUrl", SOURCIFY_BROWSER_URL))

    build_info_dir = values.get("build_info_dir")
    return VerifierConfig(network=network,
                          etherscan=etherscan,
                          sourcify=sourcify,
                          solidity=values.get("solidity"),
                          build_info_dir=Path(build_info_dir) if build_info_dir else DEFAULT_BUILD_INFO_DIR,
                          conf_file=values.get("conf"),
                          quiet=bool(values.get("quiet")),
                          debug=bool(values.get("debug")),
                          debug_topics=tuple(values.get("debug_topics") or ()),
                          show_debug_topics=bool(values.get("show_debug_topics")))


def get_config(args_list: Optional[List[str]] = None) -> Tuple[VerifierConfig, VerifyTaskArgs]:
    """
    Parses the command line and the conf file it points to
    @param args_list: the command line arguments, without the program name
    @return: the configuration of the verifier, and the verification request
    """
    if args_list is None:
        args_list = sys.argv[1:]

    parser = __get_argparser()

    # if there is a --help flag, we want to ignore all parsing errors, even those before it:
    if any(string in [arg.strip() for arg in args_list] for string in ['--help', '-h']):
        parser.print_help()
        exit(0)

    args = parser.parse_args(args_list)
    values = vars(args)
    flatten_arg_lists(values)

    if values.get("conf"):
        VerifierAttributes.CONF.validate_value(values["conf"])
        read_from_conf_file(values)
    validate_values(values)

    config = build_config(values)
    task_args = VerifyTaskArgs(address=values.get("address"),
                               constructor_args_params=tuple(values.get("constructor_args_params") or ()),
                               constructor_args=values.get("constructor_args"),
                               libraries=values.get("libraries"),
                               contract=values.get("contract"),
                               list_networks=bool(values.get("list_networks")))

    context_logger.debug("parsed args successfully.")
    context_logger.debug(f"config= {config}")
    return config, task_args
