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
from typing import Dict, List

sys.path.insert(0, str(Path(__file__).parent.resolve()))  # containing directory
sys.path.insert(0, str(Path(__file__).parent.parent.resolve()))  # scripts directory

from ContractVerifier import verifierCompileTasks as CompileTasks
from ContractVerifier.verifierBuildDataClasses import BuildInfo
from ContractVerifier.verifierCompileTasks import BuildInfoCompileTasks
from Shared import verifierUtils as Util
from verifierTestFixtures import make_build_info


def make_project_build_info(imports: Dict[str, List[str]]) -> BuildInfo:
    return BuildInfo.from_json(make_build_info({}, imports))


class TestImports(unittest.TestCase):
    def test_compact_ast(self) -> None:
        ast = {"nodeType": "SourceUnit", "nodes": [
            {"nodeType": "PragmaDirective"},
            {"nodeType": "ImportDirective", "absolutePath": "contracts/B.sol"},
            {"nodeType": "ImportDirective", "absolutePath": "@openzeppelin/contracts/token/ERC20/ERC20.sol"}
        ]}
        self.assertEqual(CompileTasks.get_imports(ast),
                         {"contracts/B.sol", "@openzeppelin/contracts/token/ERC20/ERC20.sol"})

    def test_legacy_ast(self) -> None:
        ast = {"name": "SourceUnit", "children": [
            {"name": "PragmaDirective", "attributes": {}},
            {"name": "ImportDirective", "attributes": {"absolutePath": "contracts/B.sol"}}
        ]}
        self.assertEqual(CompileTasks.get_imports(ast), {"contracts/B.sol"})


class TestMinimalInput(unittest.TestCase):
    def test_transitive_closure(self) -> None:
        build_info = make_project_build_info({
            "contracts/A.sol": ["contracts/B.sol"],
            "contracts/B.sol": ["contracts/C.sol"],
            "contracts/C.sol": [],
            "contracts/Unrelated.sol": ["contracts/C.sol"]
        })
        compiler_input = CompileTasks.get_minimal_input(BuildInfoCompileTasks(build_info), "contracts/A.sol")
        self.assertEqual(sorted(compiler_input["sources"]), ["contracts/A.sol", "contracts/B.sol", "contracts/C.sol"])
        self.assertEqual(compiler_input["sources"]["contracts/B.sol"]["content"], "// contracts/B.sol\n")
        self.assertEqual(compiler_input["language"], "Solidity")
        self.assertEqual(compiler_input["settings"], build_info.input["settings"])

    def test_settings_are_copied(self) -> None:
        build_info = make_project_build_info({"contracts/A.sol": []})
        compiler_input = CompileTasks.get_minimal_input(BuildInfoCompileTasks(build_info), "contracts/A.sol")
        compiler_input["settings"]["libraries"] = {}
        self.assertNotIn("libraries", build_info.input["settings"])

    def test_import_cycle(self) -> None:
        build_info = make_project_build_info({
            "contracts/A.sol": ["contracts/B.sol"],
            "contracts/B.sol": ["contracts/A.sol"]
        })
        compiler_input = CompileTasks.get_minimal_input(BuildInfoCompileTasks(build_info), "contracts/B.sol")
        self.assertEqual(sorted(compiler_input["sources"]), ["contracts/A.sol", "contracts/B.sol"])

    def test_legacy_build_info(self) -> None:
        build_info = make_project_build_info({"contracts/A.sol": [], "contracts/B.sol": []})
        build_info.output["sources"]["contracts/A.sol"] = {"id": 0, "legacyAST": {"name": "SourceUnit", "children": [
            {"name": "ImportDirective", "attributes": {"absolutePath": "contracts/B.sol"}}
        ]}}
        compiler_input = CompileTasks.get_minimal_input(BuildInfoCompileTasks(build_info), "contracts/A.sol")
        self.assertEqual(sorted(compiler_input["sources"]), ["contracts/A.sol", "contracts/B.sol"])

    def test_unknown_source(self) -> None:
        build_info = make_project_build_info({"contracts/A.sol": ["contracts/Missing.sol"]})
        with self.assertRaises(Util.VerifierUserInputError):
            CompileTasks.get_minimal_input(BuildInfoCompileTasks(build_info), "contracts/A.sol")


class TestDependencyGraph(unittest.TestCase):
    def test_transitive_dependencies(self) -> None:
        graph = CompileTasks.DependencyGraph()
        a = CompileTasks.ResolvedFile("A.sol", "")
        b = CompileTasks.ResolvedFile("B.sol", "")
        c = CompileTasks.ResolvedFile("C.sol", "")
        graph.add_file(a, {"B.sol"})
        graph.add_file(b, {"C.sol", "A.sol"})
        graph.add_file(c, set())
        self.assertEqual(graph.get_dependencies(a), [b])
        self.assertEqual(graph.get_transitive_dependencies(a), [b, c])
        self.assertEqual(graph.get_transitive_dependencies(c), [])


if __name__ == '__main__':
    unittest.main()
