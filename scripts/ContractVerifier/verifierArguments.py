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
from typing import Any, Dict, List, Optional

import json5
from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_utils import add_0x_prefix, is_address

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier.verifierBuildDataClasses import VerificationArgs
from ContractVerifier.verifierErrors import ABIArgumentLengthError, ABIArgumentTypeError, \
    ExclusiveConstructorArgumentsError, InvalidAddressError, InvalidConstructorArgumentsError, \
    InvalidConstructorArgumentsModuleError, InvalidContractNameError, InvalidLibrariesError, \
    InvalidLibrariesModuleError, MissingAddressError
from Shared import verifierUtils as Util

arguments_logger = logging.getLogger("arguments")

TRUE_STRINGS = ("true", "1")
FALSE_STRINGS = ("false", "0")


def resolve_constructor_arguments(constructor_args_params: List[Any],
                                  constructor_args_file: Optional[str]) -> List[Any]:
    """
    @param constructor_args_params: the arguments given on the command line
    @param constructor_args_file: a json5 file holding a list of arguments
    @raise ExclusiveConstructorArgumentsError: both a file and command line arguments were given
    @raise InvalidConstructorArgumentsModuleError: the file does not hold a list
    """
    if constructor_args_file is None:
        return list(constructor_args_params)
    if constructor_args_params:
        raise ExclusiveConstructorArgumentsError()

    try:
        with open(constructor_args_file, 'r') as f:
            constructor_args = json5.load(f)
    except (OSError, ValueError) as e:
        raise InvalidConstructorArgumentsModuleError(constructor_args_file) from e
    if not isinstance(constructor_args, list):
        raise InvalidConstructorArgumentsModuleError(constructor_args_file)
    arguments_logger.debug(f"read {len(constructor_args)} constructor arguments from {constructor_args_file}")
    return constructor_args


def resolve_libraries(libraries_file: Optional[str]) -> Dict[str, str]:
    """
    @param libraries_file: a json5 file mapping library names to addresses
    @raise InvalidLibrariesModuleError: the file does not hold a dictionary
    """
    if libraries_file is None:
        return {}
    try:
        with open(libraries_file, 'r') as f:
            libraries = json5.load(f)
    except (OSError, ValueError) as e:
        raise InvalidLibrariesModuleError(libraries_file) from e
    if not isinstance(libraries, dict):
        raise InvalidLibrariesModuleError(libraries_file)
    return dict(libraries)


def resolve_address(address: Optional[str], contract: Optional[str]) -> str:
    """
    @return: the address with its 0x prefix
    @raise MissingAddressError, InvalidAddressError, InvalidContractNameError
    """
    if address is None:
        raise MissingAddressError()
    if not is_address(address):
        raise InvalidAddressError(address)
    if contract is not None and not Util.is_fully_qualified_name(contract):
        raise InvalidContractNameError(contract)
    return add_0x_prefix(address)


def resolve_arguments(address: Optional[str], constructor_args_params: List[Any],
                      constructor_args_file: Optional[str], libraries_file: Optional[str],
                      contract: Optional[str]) -> VerificationArgs:
    address = resolve_address(address, contract)
    constructor_args = resolve_constructor_arguments(constructor_args_params, constructor_args_file)
    libraries = resolve_libraries(libraries_file)
    return VerificationArgs(address=address, constructor_args=constructor_args, libraries=libraries,
                            contract_fqn=contract)


def check_arguments(address: Optional[str], constructor_args: Any, libraries: Any,
                    contract: Optional[str]) -> VerificationArgs:
    """
    Same as resolve_arguments, for arguments that are already in memory
    @param constructor_args: must be a list
    @param libraries: must be a dictionary from library names to addresses
    """
    address = resolve_address(address, contract)
    if not isinstance(constructor_args, list):
        raise InvalidConstructorArgumentsError()
    if not isinstance(libraries, dict):
        raise InvalidLibrariesError()
    return VerificationArgs(address=address, constructor_args=list(constructor_args), libraries=dict(libraries),
                            contract_fqn=contract)


def get_abi_type(abi_input: Dict[str, Any]) -> str:
    """
    @return: the canonical type of an ABI input, tuples are written as (t1,t2,...) followed by their array suffix
    """
    abi_type = abi_input["type"]
    if not abi_type.startswith("tuple"):
        return abi_type
    components = ",".join(get_abi_type(component) for component in abi_input.get("components", []))
    return f"({components}){abi_type[len('tuple'):]}"


def __split_array_type(abi_type: str) -> Optional[str]:
    """
    @return: the element type of an array type, None if the type is not an array
    """
    if not abi_type.endswith("]"):
        return None
    return abi_type[:abi_type.rindex("[")]


def __split_tuple_type(abi_type: str) -> List[str]:
    inner = abi_type[1:-1]
    types = []
    depth = 0
    curr = ""
    for c in inner:
        if c == "," and depth == 0:
            types.append(curr)
            curr = ""
            continue
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
        curr += c
    if curr:
        types.append(curr)
    return types


def convert_argument(abi_type: str, value: Any) -> Any:
    """
    Command line arguments are strings, convert them to the python values the encoder expects
    """
    element_type = __split_array_type(abi_type)
    if element_type is not None:
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"expected a list for {abi_type}, got {value!r}")
        return [convert_argument(element_type, v) for v in value]

    if abi_type.startswith("("):
        component_types = __split_tuple_type(abi_type)
        if isinstance(value, dict):
            value = list(value.values())
        if not isinstance(value, (list, tuple)) or len(value) != len(component_types):
            raise TypeError(f"expected {len(component_types)} values for {abi_type}, got {value!r}")
        return tuple(convert_argument(t, v) for t, v in zip(component_types, value))

    if abi_type.startswith(("uint", "int")) and isinstance(value, str):
        return int(value, 0)
    if abi_type == "bool" and isinstance(value, str):
        if value.lower() in TRUE_STRINGS:
            return True
        if value.lower() in FALSE_STRINGS:
            return False
        raise ValueError(f"invalid bool {value}")
    if abi_type.startswith("bytes") and isinstance(value, str):
        return bytes.fromhex(Util.strip_hex_prefix(value))
    return value


def encode_constructor_arguments(abi: List[Dict[str, Any]], source_name: str, contract_name: str,
                                 constructor_args: List[Any]) -> str:
    """
    @return: the ABI encoding of the constructor arguments, hex without the 0x prefix
    @raise ABIArgumentLengthError: the number of arguments is not the number of constructor parameters
    @raise ABIArgumentTypeError: an argument cannot be encoded as its parameter type
    """
    contract_fqn = Util.get_fully_qualified_name(source_name, contract_name)
    constructor = next((entry for entry in abi if entry.get("type") == "constructor"), None)
    inputs = constructor.get("inputs", []) if constructor is not None else []
    if len(inputs) != len(constructor_args):
        raise ABIArgumentLengthError(contract_fqn, len(inputs), len(constructor_args))
    if not inputs:
        return ""

    types = [get_abi_type(abi_input) for abi_input in inputs]
    try:
        values = [convert_argument(t, v) for t, v in zip(types, constructor_args)]
        encoded = encode(types, values)
    except (EncodingError, TypeError, ValueError, OverflowError) as e:
        raise ABIArgumentTypeError(contract_fqn, str(e)) from e
    arguments_logger.debug(f"encoded {len(values)} constructor arguments of {contract_fqn}")
    return encoded.hex()
