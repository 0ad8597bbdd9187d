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
from pathlib import Path

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from Shared import verifierUtils as Util
from Shared import verifierAttrUtil as AttrUtil
from Shared import verifierValidateFuncs as Vf


def validate_contract_name(value: str) -> str:
    if not Util.is_fully_qualified_name(value):
        raise Util.VerifierUserInputError(f"{value} is not a fully qualified name, use the format "
                                          "path/sourceName.sol:contractName")
    return value


class VerifierAttributes(AttrUtil.Attributes):
    """
    Positional arguments first, in the order they are given on the command line
    """

    ADDRESS = AttrUtil.AttributeDefinition(
        help_msg="Address of the contract to verify",
        positional=True,
        argparse_args={
            'nargs': AttrUtil.OPTIONAL
        }
    )

    CONSTRUCTOR_ARGS_PARAMS = AttrUtil.AttributeDefinition(
        arg_type=AttrUtil.AttrArgType.LIST,
        help_msg="Contract constructor arguments. Cannot be used together with --constructor_args",
        positional=True,
        argparse_args={
            'nargs': AttrUtil.MULTIPLE_OCCURRENCES
        }
    )

    CONF = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_conf_file,
        help_msg="Read the networks, the explorers and the compilers from a .conf file",
        default_desc="Uses the flags only",
        argparse_args={
            'action': AttrUtil.UniqueStore
        }
    )

    NETWORK = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_network_name,
        help_msg="The network the contract is deployed on",
        default_desc="mainnet",
        argparse_args={
            'action': AttrUtil.UniqueStore
        }
    )

    RPC_URL = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_url,
        help_msg="The JSON-RPC endpoint of the network",
        default_desc="The url of the network in the conf file",
        argparse_args={
            'action': AttrUtil.UniqueStore
        }
    )

    CONTRACT = AttrUtil.AttributeDefinition(
        attr_validation_func=validate_contract_name,
        help_msg="Fully qualified name of the contract to verify, e.g. contracts/Example.sol:ExampleContract",
        default_desc="Infers the contract from the deployed bytecode",
        argparse_args={
            'action': AttrUtil.UniqueStore
        }
    )

    CONSTRUCTOR_ARGS = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_json5_file,
        help_msg="A JSON5 file with the list of constructor arguments",
        default_desc="Uses the positional arguments",
        argparse_args={
            'action': AttrUtil.UniqueStore
        }
    )

    LIBRARIES = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_json5_file,
        help_msg="A JSON5 file mapping library names to addresses. Required for libraries that are only used in "
                 "the constructor",
        default_desc="Detects the addresses from the deployed bytecode",
        argparse_args={
            'action': AttrUtil.UniqueStore
        }
    )

    BUILD_INFO_DIR = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_dir,
        help_msg="The directory of the build info files of the project",
        default_desc="artifacts/build-info",
        argparse_args={
            'action': AttrUtil.UniqueStore
        }
    )

    ETHERSCAN_API_KEY = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_non_empty_string,
        help_msg="The API key of the block explorer",
        default_desc=f"Taken from the conf file or the {Util.ENVVAR_ETHERSCAN_API_KEY} environment variable",
        argparse_args={
            'action': AttrUtil.UniqueStore
        }
    )

    NO_SOURCIFY = AttrUtil.AttributeDefinition(
        arg_type=AttrUtil.AttrArgType.BOOLEAN,
        help_msg="Do not verify on Sourcify, even if it is enabled in the conf file",
        default_desc="Follows the conf file",
        argparse_args={
            'action': AttrUtil.STORE_TRUE
        }
    )

    LIST_NETWORKS = AttrUtil.AttributeDefinition(
        arg_type=AttrUtil.AttrArgType.BOOLEAN,
        help_msg="Print the supported networks and exit",
        default_desc="",
        argparse_args={
            'action': AttrUtil.STORE_TRUE
        }
    )

    QUIET = AttrUtil.AttributeDefinition(
        arg_type=AttrUtil.AttrArgType.BOOLEAN,
        help_msg="Show warnings and errors only",
        default_desc="",
        argparse_args={
            'action': AttrUtil.STORE_TRUE
        }
    )

    DEBUG = AttrUtil.AttributeDefinition(
        arg_type=AttrUtil.AttrArgType.BOOLEAN,
        argparse_args={
            'action': AttrUtil.STORE_TRUE
        }
    )

    SHOW_DEBUG_TOPICS = AttrUtil.AttributeDefinition(
        arg_type=AttrUtil.AttrArgType.BOOLEAN,
        argparse_args={
            'action': AttrUtil.STORE_TRUE
        }
    )

    DEBUG_TOPICS = AttrUtil.AttributeDefinition(
        arg_type=AttrUtil.AttrArgType.LIST,
        argparse_args={
            'nargs': AttrUtil.ONE_OR_MORE_OCCURRENCES,
            'action': AttrUtil.APPEND
        }
    )

    NETWORKS = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_networks_conf,
        arg_type=AttrUtil.AttrArgType.MAP,
        conf_only=True
    )

    ETHERSCAN = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_etherscan_conf,
        arg_type=AttrUtil.AttrArgType.MAP,
        conf_only=True
    )

    SOURCIFY = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_sourcify_conf,
        arg_type=AttrUtil.AttrArgType.MAP,
        conf_only=True
    )

    SOLIDITY = AttrUtil.AttributeDefinition(
        attr_validation_func=Vf.validate_solidity_conf,
        arg_type=AttrUtil.AttrArgType.MAP,
        conf_only=True
    )
