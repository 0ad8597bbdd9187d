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
Bytecode, compiler output and build info builders shared by the verifier tests
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import cbor2

# PUSH1 0x80 PUSH1 0x40 MSTORE CALLVALUE DUP1 ISZERO PUSH1 0x0f JUMPI PUSH1 0x00 DUP1 REVERT JUMPDEST POP
EXECUTABLE = bytes.fromhex("6080604052348015600f57600080fd5b50")
OTHER_EXECUTABLE = bytes.fromhex("6080604052600436106100405760003560e0")
SOLC_0_8_19 = bytes([0, 8, 19])
IPFS_HASH_A = bytes(range(34))
IPFS_HASH_B = bytes(range(100, 134))

CONTRACT_ADDRESS = "0x" + "ab" * 20
LIBRARY_ADDRESS = "0x" + "11" * 20
SEPOLIA_CHAIN_ID = 11155111


def make_metadata(solc_version: Optional[Any] = SOLC_0_8_19, ipfs_hash: bytes = IPFS_HASH_A) -> bytes:
    """
    @return: a metadata trailer the way solc appends it: a CBOR map followed by its 2 bytes length
    """
    metadata: Dict[str, Any] = {"ipfs": ipfs_hash}
    if solc_version is not None:
        metadata["solc"] = solc_version
    payload = cbor2.dumps(metadata)
    return payload + len(payload).to_bytes(2, "big")


def make_runtime_bytecode(executable: bytes = EXECUTABLE, solc_version: Optional[Any] = SOLC_0_8_19,
                          ipfs_hash: bytes = IPFS_HASH_A) -> bytes:
    return executable + make_metadata(solc_version, ipfs_hash)


def make_contract_output(deployed_object: str, abi: Optional[List[Dict[str, Any]]] = None,
                         link_references: Optional[Dict[str, Any]] = None,
                         deployed_link_references: Optional[Dict[str, Any]] = None,
                         immutable_references: Optional[Dict[str, Any]] = None,
                         metadata: Optional[str] = None) -> Dict[str, Any]:
    output: Dict[str, Any] = {
        "abi": abi if abi is not None else [],
        "evm": {
            "bytecode": {
                "object": deployed_object,
                "linkReferences": link_references or {}
            },
            "deployedBytecode": {
                "object": deployed_object,
                "linkReferences": deployed_link_references or {},
                "immutableReferences": immutable_references or {}
            }
        }
    }
    if metadata is not None:
        output["metadata"] = metadata
    return output


def make_source_ast(imports: List[str]) -> Dict[str, Any]:
    return {
        "nodeType": "SourceUnit",
        "nodes": [{"nodeType": "ImportDirective", "absolutePath": imported} for imported in imports] +
                 [{"nodeType": "ContractDefinition", "name": "Dummy"}]
    }


def make_build_info(contracts: Dict[str, Dict[str, Dict[str, Any]]], imports: Dict[str, List[str]],
                    solc_version: str = "0.8.19",
                    solc_long_version: str = "0.8.19+commit.7dd6d404") -> Dict[str, Any]:
    """
    @param contracts: source name -> contract name -> compiler output of the contract
    @param imports: source name -> the source names it imports. Every source of the build info must appear here
    """
    return {
        "id": f"build-info-{solc_version}",
        "solcVersion": solc_version,
        "solcLongVersion": solc_long_version,
        "input": {
            "language": "Solidity",
            "sources": {source_name: {"content": f"// {source_name}\n"} for source_name in imports},
            "settings": {"optimizer": {"enabled": True, "runs": 200}, "outputSelection": {"*": {"*": ["*"]}}}
        },
        "output": {
            "contracts": contracts,
            "sources": {source_name: {"id": i, "ast": make_source_ast(imported)}
                        for i, (source_name, imported) in enumerate(imports.items())}
        }
    }


def write_build_info(build_info_dir: Path, name: str, build_info: Dict[str, Any]) -> Path:
    build_info_dir.mkdir(parents=True, exist_ok=True)
    path = build_info_dir / f"{name}.json"
    with path.open("w") as f:
        json.dump(build_info, f)
    return path


def mock_http_response(json_data: Any, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = json_data
    response.text = json.dumps(json_data)
    return response


class FakeProvider:
    """Answers eth_getCode and eth_chainId from memory"""

    def __init__(self, code: str, chain_id: int = SEPOLIA_CHAIN_ID, network: str = "sepolia") -> None:
        self.code = code
        self.chain_id = chain_id
        self.network = network

    def get_code(self, address: str) -> str:
        return self.code

    def get_chain_id(self) -> int:
        return self.chain_id
