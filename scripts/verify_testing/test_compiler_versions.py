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
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent.resolve()))  # containing directory
sys.path.insert(0, str(Path(__file__).parent.parent.resolve()))  # scripts directory

from ContractVerifier import verifierCompilerVersions as CompilerVersions
from ContractVerifier.verifierBytecode import Bytecode
from ContractVerifier.verifierErrors import CompilerVersionsMismatchError
from verifierTestFixtures import EXECUTABLE, make_runtime_bytecode

CONFIGURED_VERSIONS = ["0.8.1", "0.8.2", "0.8.19"]


class DeclaredVersionBytecode:
    """A deployed bytecode whose metadata declares the given version or range"""

    def __init__(self, version: Optional[str], ovm: bool = False) -> None:
        self.version = version
        self.ovm = ovm

    def get_version(self) -> Optional[str]:
        return self.version

    def get_version_description(self) -> str:
        return self.version if self.version is not None else "<0.4.7"

    def is_ovm(self) -> bool:
        return self.ovm


class TestVersionRanges(unittest.TestCase):
    def test_caret(self) -> None:
        self.assertTrue(CompilerVersions.version_satisfies("0.8.19", "^0.8.0"))
        self.assertFalse(CompilerVersions.version_satisfies("0.9.0", "^0.8.0"))
        self.assertFalse(CompilerVersions.version_satisfies("0.7.6", "^0.8.0"))

    def test_hyphen_range(self) -> None:
        self.assertTrue(CompilerVersions.version_satisfies("0.4.7", "0.4.7 - 0.5.8"))
        self.assertTrue(CompilerVersions.version_satisfies("0.5.8", "0.4.7 - 0.5.8"))
        self.assertFalse(CompilerVersions.version_satisfies("0.5.9", "0.4.7 - 0.5.8"))

    def test_hyphen_range_partial_upper_bound(self) -> None:
        self.assertTrue(CompilerVersions.version_satisfies("0.4.0", "0.4 - 0.5"))
        self.assertTrue(CompilerVersions.version_satisfies("0.5.17", "0.4 - 0.5"))
        self.assertFalse(CompilerVersions.version_satisfies("0.6.0", "0.4 - 0.5"))
        self.assertTrue(CompilerVersions.version_satisfies("0.8.30", "0.4.24 - 0"))
        self.assertFalse(CompilerVersions.version_satisfies("1.0.0", "0.4.24 - 0"))

    def test_alternatives_and_wildcards(self) -> None:
        self.assertTrue(CompilerVersions.version_satisfies("0.6.12", ">=0.6.0 <0.7.0 || 0.8.x"))
        self.assertTrue(CompilerVersions.version_satisfies("0.8.4", ">=0.6.0 <0.7.0 || 0.8.x"))
        self.assertFalse(CompilerVersions.version_satisfies("0.7.6", ">=0.6.0 <0.7.0 || 0.8.x"))

    def test_commit_suffix_is_ignored(self) -> None:
        self.assertEqual(CompilerVersions.get_base_version("0.8.19+commit.7dd6d404"), "0.8.19")
        self.assertTrue(CompilerVersions.version_satisfies("0.8.19+commit.7dd6d404", "~0.8.10"))

    def test_is_version_range(self) -> None:
        self.assertFalse(CompilerVersions.is_version_range("0.8.19"))
        self.assertFalse(CompilerVersions.is_version_range("0.8.20-nightly.2023.4.18+commit.3c1a4ad1"))
        self.assertTrue(CompilerVersions.is_version_range("0.4.7 - 0.5.8"))
        self.assertTrue(CompilerVersions.is_version_range("^0.8.0"))


class TestMatchingVersions(unittest.TestCase):
    def test_exact_version(self) -> None:
        deployed = Bytecode(make_runtime_bytecode(solc_version=bytes([0, 8, 2])))
        self.assertEqual(CompilerVersions.get_matching_versions(deployed, CONFIGURED_VERSIONS), ["0.8.2"])

    def test_range_matches_all(self) -> None:
        deployed = DeclaredVersionBytecode("^0.8.0")
        self.assertEqual(CompilerVersions.get_matching_versions(deployed, CONFIGURED_VERSIONS),  # type: ignore
                         CONFIGURED_VERSIONS)

    def test_no_metadata_matches_all(self) -> None:
        deployed = Bytecode(EXECUTABLE)
        self.assertEqual(CompilerVersions.get_matching_versions(deployed, CONFIGURED_VERSIONS), CONFIGURED_VERSIONS)

    def test_configured_long_versions(self) -> None:
        deployed = Bytecode(make_runtime_bytecode())
        configured = ["0.8.19+commit.7dd6d404", "0.7.6"]
        self.assertEqual(CompilerVersions.get_matching_versions(deployed, configured), ["0.8.19+commit.7dd6d404"])

    def test_mismatch(self) -> None:
        deployed = Bytecode(make_runtime_bytecode(solc_version=bytes([0, 7, 6])))
        with self.assertRaises(CompilerVersionsMismatchError) as cm:
            CompilerVersions.get_and_check_matching_versions(deployed, CONFIGURED_VERSIONS, "sepolia")
        self.assertIn("0.7.6", str(cm.exception))

    def test_ovm_never_mismatches(self) -> None:
        deployed = DeclaredVersionBytecode("0.7.6", ovm=True)
        self.assertEqual(CompilerVersions.get_and_check_matching_versions(deployed,  # type: ignore
                                                                          CONFIGURED_VERSIONS, "optimism"),
                         CONFIGURED_VERSIONS)


class TestConfiguredVersions(unittest.TestCase):
    def test_single_version(self) -> None:
        self.assertEqual(CompilerVersions.get_configured_compiler_versions("0.8.19"), ["0.8.19"])

    def test_compilers_and_overrides(self) -> None:
        solidity = {
            "compilers": [{"version": "0.8.19"}, "0.7.6"],
            "overrides": {"contracts/Old.sol": {"version": "0.6.12"}, "contracts/Other.sol": {"version": "0.8.19"}}
        }
        self.assertEqual(CompilerVersions.get_configured_compiler_versions(solidity), ["0.8.19", "0.7.6", "0.6.12"])

    def test_nothing_configured(self) -> None:
        self.assertEqual(CompilerVersions.get_configured_compiler_versions(None), [])


if __name__ == '__main__':
    unittest.main()
