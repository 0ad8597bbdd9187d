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
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.resolve()))  # containing directory
sys.path.insert(0, str(Path(__file__).parent.parent.resolve()))  # scripts directory

from ContractVerifier.verifierArtifacts import BuildInfoArtifactStore, get_named_contract_information, \
    resolve_contract_information
from ContractVerifier.verifierBytecode import Bytecode
from ContractVerifier.verifierErrors import BuildInfoCompilerVersionMismatchError, ContractNotFoundError, \
    DeployedBytecodeMismatchError, DeployedBytecodeMultipleMatchesError, DeployedBytecodeNotMatchedError
from verifierTestFixtures import EXECUTABLE, IPFS_HASH_B, OTHER_EXECUTABLE, make_build_info, make_contract_output, \
    make_runtime_bytecode, write_build_info

TOKEN_FQN = "contracts/Token.sol:Token"
# contains CALLER GAS
OVM_EXECUTABLE = bytes.fromhex("6080335a604052600080fd5b50")


class TestArtifacts(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.build_info_dir = Path(self.tmp_dir.name) / "build-info"
        self.deployed = Bytecode(make_runtime_bytecode(ipfs_hash=IPFS_HASH_B))
        self.ovm_deployed = Bytecode(make_runtime_bytecode(OVM_EXECUTABLE, ipfs_hash=IPFS_HASH_B))

    def tearDown(self) -> None:
        self.tmp_dir.cleanup()

    def write_token_build_info(self, name: str = "token", solc_version: str = "0.8.19",
                               executable: bytes = EXECUTABLE) -> None:
        contracts = {
            "contracts/Token.sol": {"Token": make_contract_output(make_runtime_bytecode(executable).hex())},
            "contracts/Other.sol": {"Other": make_contract_output(make_runtime_bytecode(OTHER_EXECUTABLE).hex())}
        }
        imports = {"contracts/Token.sol": [], "contracts/Other.sol": []}
        write_build_info(self.build_info_dir, name,
                         make_build_info(contracts, imports, solc_version, f"{solc_version}+commit.7dd6d404"))

    def test_store(self) -> None:
        self.write_token_build_info()
        store = BuildInfoArtifactStore(self.build_info_dir)
        self.assertTrue(store.artifact_exists(TOKEN_FQN))
        self.assertFalse(store.artifact_exists("contracts/Token.sol:Missing"))
        self.assertEqual(store.get_all_fully_qualified_names(), ["contracts/Other.sol:Other", TOKEN_FQN])
        self.assertEqual(store.get_all_compiler_versions(), ["0.8.19"])

    def test_missing_directory(self) -> None:
        store = BuildInfoArtifactStore(Path(self.tmp_dir.name) / "missing")
        self.assertEqual(store.get_all_fully_qualified_names(), [])

    def test_named_contract(self) -> None:
        self.write_token_build_info()
        store = BuildInfoArtifactStore(self.build_info_dir)
        information = resolve_contract_information(store, self.deployed, ["0.8.19"], "sepolia", TOKEN_FQN)
        self.assertEqual(information.source_name, "contracts/Token.sol")
        self.assertEqual(information.contract_name, "Token")
        self.assertEqual(information.solc_long_version, "0.8.19+commit.7dd6d404")

    def test_named_contract_not_found(self) -> None:
        self.write_token_build_info()
        store = BuildInfoArtifactStore(self.build_info_dir)
        with self.assertRaises(ContractNotFoundError):
            get_named_contract_information(store, "contracts/Token.sol:Missing", self.deployed, ["0.8.19"],
                                           "sepolia")

    def test_named_contract_version_mismatch(self) -> None:
        self.write_token_build_info(solc_version="0.8.17")
        store = BuildInfoArtifactStore(self.build_info_dir)
        with self.assertRaises(BuildInfoCompilerVersionMismatchError):
            get_named_contract_information(store, TOKEN_FQN, self.deployed, ["0.8.19"], "sepolia")

    def test_named_contract_bytecode_mismatch(self) -> None:
        self.write_token_build_info()
        store = BuildInfoArtifactStore(self.build_info_dir)
        with self.assertRaises(DeployedBytecodeMismatchError):
            get_named_contract_information(store, "contracts/Other.sol:Other", self.deployed, ["0.8.19"], "sepolia")

    def test_inferred_contract(self) -> None:
        self.write_token_build_info()
        store = BuildInfoArtifactStore(self.build_info_dir)
        information = resolve_contract_information(store, self.deployed, ["0.8.19"], "sepolia")
        self.assertEqual(information.fully_qualified_name, TOKEN_FQN)

    def test_inferred_contract_skips_other_versions(self) -> None:
        self.write_token_build_info(solc_version="0.8.17")
        store = BuildInfoArtifactStore(self.build_info_dir)
        with self.assertRaises(DeployedBytecodeNotMatchedError):
            resolve_contract_information(store, self.deployed, ["0.8.19"], "sepolia")

    def test_inferred_contract_ambiguity(self) -> None:
        identical = make_runtime_bytecode().hex()
        contracts = {
            "contracts/A.sol": {"A": make_contract_output(identical)},
            "contracts/B.sol": {"B": make_contract_output(identical)}
        }
        write_build_info(self.build_info_dir, "twins",
                         make_build_info(contracts, {"contracts/A.sol": [], "contracts/B.sol": []}))
        store = BuildInfoArtifactStore(self.build_info_dir)
        with self.assertRaises(DeployedBytecodeMultipleMatchesError) as cm:
            resolve_contract_information(store, self.deployed, ["0.8.19"], "sepolia")
        self.assertEqual(cm.exception.fqn_matches, ["contracts/A.sol:A", "contracts/B.sol:B"])

    def test_ovm_named_contract_ignores_compiler_version(self) -> None:
        self.write_token_build_info(solc_version="0.7.6", executable=OVM_EXECUTABLE)
        store = BuildInfoArtifactStore(self.build_info_dir)
        information = resolve_contract_information(store, self.ovm_deployed, ["0.8.19"], "optimism", TOKEN_FQN)
        self.assertEqual(information.fully_qualified_name, TOKEN_FQN)
        self.assertEqual(information.solc_long_version, "0.7.6+commit.7dd6d404")

    def test_ovm_inferred_contract_scans_every_build_info(self) -> None:
        self.write_token_build_info(solc_version="0.7.6", executable=OVM_EXECUTABLE)
        store = BuildInfoArtifactStore(self.build_info_dir)
        information = resolve_contract_information(store, self.ovm_deployed, ["0.8.19"], "optimism")
        self.assertEqual(information.fully_qualified_name, TOKEN_FQN)

    def test_ovm_bytecode_must_still_match(self) -> None:
        self.write_token_build_info(solc_version="0.7.6", executable=OVM_EXECUTABLE)
        store = BuildInfoArtifactStore(self.build_info_dir)
        with self.assertRaises(DeployedBytecodeMismatchError):
            get_named_contract_information(store, "contracts/Other.sol:Other", self.ovm_deployed, ["0.8.19"],
                                           "optimism")


if __name__ == '__main__':
    unittest.main()
