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
import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Set, Tuple

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier.verifierBuildDataClasses import BuildInfo
from ContractVerifier.verifierErrors import UnexpectedNumberOfFilesError
from Shared import verifierUtils as Util

compile_tasks_logger = logging.getLogger("compile_tasks")

SOLIDITY_LANGUAGE = "Solidity"


@dataclass(frozen=True)
class ResolvedFile:
    source_name: str
    content: str


class DependencyGraph:
    """
    The source files of a compilation and the files each of them imports
    """

    def __init__(self) -> None:
        self._files: Dict[str, ResolvedFile] = {}
        self._dependencies: Dict[str, Set[str]] = {}

    def add_file(self, resolved_file: ResolvedFile, dependencies: Set[str]) -> None:
        self._files[resolved_file.source_name] = resolved_file
        self._dependencies[resolved_file.source_name] = set(dependencies)

    def get_resolved_files(self) -> List[ResolvedFile]:
        return list(self._files.values())

    def get_dependencies(self, resolved_file: ResolvedFile) -> List[ResolvedFile]:
        return [self._files[name] for name in sorted(self._dependencies.get(resolved_file.source_name, set()))
                if name in self._files]

    def get_transitive_dependencies(self, resolved_file: ResolvedFile) -> List[ResolvedFile]:
        """
        @return: all the files the given file needs in order to compile, not including the file itself
        """
        seen: Set[str] = {resolved_file.source_name}
        dependencies = []
        worklist = [resolved_file]
        while worklist:
            curr = worklist.pop()
            for dependency in self.get_dependencies(curr):
                if dependency.source_name not in seen:
                    seen.add(dependency.source_name)
                    dependencies.append(dependency)
                    worklist.append(dependency)
        return sorted(dependencies, key=lambda f: f.source_name)


@dataclass(frozen=True)
class CompilationJob:
    solc_version: str
    language: str
    settings: Dict[str, Any]
    files: Tuple[ResolvedFile, ...]  # the file to compile, then its dependencies


def get_imports(ast: Dict[str, Any]) -> Set[str]:
    """
    @param ast: the AST of a source unit, in the compact format or in the legacy format of old solc versions
    @return: the source names of the files the source unit imports
    """
    imports = set()
    for node in ast.get("nodes", []):
        if node.get("nodeType") == "ImportDirective":
            imports.add(node["absolutePath"])
    for node in ast.get("children", []):
        if node.get("name") == "ImportDirective":
            imports.add(node.get("attributes", {})["absolutePath"])
    return imports


class BuildInfoCompileTasks:
    """
    Compilation tasks over the sources of an existing build info, so the inputs we build are the ones that produced
    the deployed bytecode.
    """

    def __init__(self, build_info: BuildInfo) -> None:
        self.build_info = build_info

    def __get_resolved_file(self, source_name: str) -> ResolvedFile:
        sources = self.build_info.input.get("sources", {})
        if source_name not in sources:
            raise Util.VerifierUserInputError(f"the source {source_name} is not part of the build info "
                                              f"{self.build_info.path}")
        return ResolvedFile(source_name, sources[source_name].get("content", ""))

    def __get_file_imports(self, source_name: str) -> Set[str]:
        ast = self.build_info.output.get("sources", {}).get(source_name, {})
        ast = ast.get("ast") or ast.get("legacyAST")
        if ast is None:
            compile_tasks_logger.warning(f"the build info has no AST for {source_name}, its imports are unknown")
            return set()
        return get_imports(ast)

    def compute_dependency_closure(self, source_name: str) -> DependencyGraph:
        graph = DependencyGraph()
        worklist = [source_name]
        seen: Set[str] = set()
        while worklist:
            curr = worklist.pop()
            if curr in seen:
                continue
            seen.add(curr)
            imports = self.__get_file_imports(curr)
            graph.add_file(self.__get_resolved_file(curr), imports)
            worklist.extend(imports)
        compile_tasks_logger.debug(f"the dependency closure of {source_name} has {len(seen)} files")
        return graph

    def build_compilation_job(self, graph: DependencyGraph, resolved_file: ResolvedFile) -> CompilationJob:
        files = (resolved_file,) + tuple(graph.get_transitive_dependencies(resolved_file))
        return CompilationJob(solc_version=self.build_info.solc_version,
                              language=self.build_info.input.get("language", SOLIDITY_LANGUAGE),
                              settings=self.build_info.input.get("settings", {}),
                              files=files)

    @staticmethod
    def build_compiler_input(job: CompilationJob) -> Dict[str, Any]:
        sources = {f.source_name: {"content": f.content} for f in sorted(job.files, key=lambda f: f.source_name)}
        return {
            "language": job.language,
            "sources": sources,
            "settings": copy.deepcopy(job.settings)
        }


def get_minimal_input(compile_tasks: BuildInfoCompileTasks, source_name: str) -> Dict[str, Any]:
    """
    @return: the compiler input of the given file and the files it imports, directly or indirectly
    @raise UnexpectedNumberOfFilesError: the dependency closure does not have exactly one file named source_name
    """
    graph = compile_tasks.compute_dependency_closure(source_name)
    resolved_files = [f for f in graph.get_resolved_files() if f.source_name == source_name]
    if len(resolved_files) != 1:
        raise UnexpectedNumberOfFilesError(source_name, len(resolved_files))

    job = compile_tasks.build_compilation_job(graph, resolved_files[0])
    return copy.deepcopy(compile_tasks.build_compiler_input(job))
