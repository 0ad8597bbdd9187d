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

import re
import sys
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from ContractVerifier.verifierBytecode import Bytecode
from ContractVerifier.verifierErrors import CompilerVersionsMismatchError
from Shared import verifierUtils as Util

bytecode_logger = logging.getLogger("bytecode")

HYPHEN_RANGE_RE = re.compile(r'^\s*(\S+)\s+-\s+(\S+)\s*$')
COMPARATOR_RE = re.compile(r'^(\^|~|>=|<=|>|<|=)?\s*v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?$')
WILDCARDS = ('x', 'X', '*')


def get_base_version(version: str) -> str:
    """
    "0.8.19+commit.7dd6d404" and "0.8.20-nightly.2023.4.18" are compiled by the 0.8.19 and 0.8.20 releases
    """
    return re.split(r'[+-]', version.strip(), maxsplit=1)[0]


def __comparator_to_specifiers(comparator: str) -> List[str]:
    """
    Translates one npm/solidity pragma comparator (^0.8.0, ~0.4.24, >=0.5.0, 0.8.19, 0.8.x) into PEP 440 specifiers
    """
    match = COMPARATOR_RE.match(comparator)
    if match is None:
        raise Util.VerifierUserInputError(f"cannot parse the version comparator \"{comparator}\"")
    operator = match.group(1) or '='
    raw_parts = [match.group(2), match.group(3), match.group(4)]
    # 0.8 and 0.8.x mean "any 0.8 release"
    known_parts = []
    for part in raw_parts:
        if part is None or part in WILDCARDS:
            break
        known_parts.append(int(part))

    if not known_parts:
        return []
    padded = known_parts + [0] * (3 - len(known_parts))
    version = '.'.join(map(str, padded))

    if operator == '=' and len(known_parts) == 3:
        return [f"=={version}"]
    if operator == '~' or (operator == '=' and len(known_parts) < 3):
        if len(known_parts) == 1:
            upper = f"{known_parts[0] + 1}.0.0"
        else:
            upper = f"{known_parts[0]}.{known_parts[1] + 1}.0"
        return [f">={version}", f"<{upper}"]
    if operator == '^':
        major, minor, patch = padded
        if major > 0 or len(known_parts) == 1:
            upper = f"{major + 1}.0.0"
        elif minor > 0 or len(known_parts) == 2:
            upper = f"0.{minor + 1}.0"
        else:
            upper = f"0.0.{patch + 1}"
        return [f">={version}", f"<{upper}"]
    return [f"{operator}{version}"]


def __hyphen_range_to_specifiers(lower: str, upper: str) -> List[str]:
    """
    Both ends of a hyphen range are inclusive, a partial upper end includes all its releases: "0.4 - 0.5" is <0.6.0
    """
    specifiers = __comparator_to_specifiers(f">={lower}")
    # either [==X.Y.Z] or [>=X.Y.0, <X.Y+1.0]
    upper_specifiers = __comparator_to_specifiers(f"={upper}")
    if len(upper_specifiers) == 1:
        specifiers.append(upper_specifiers[0].replace("==", "<=", 1))
    else:
        specifiers += upper_specifiers[1:]
    return specifiers


def npm_range_to_specifier_sets(version_range: str) -> List[SpecifierSet]:
    """
    @param version_range: a range in npm semver syntax, e.g. "^0.8.0", "0.4.7 - 0.5.8", ">=0.6.0 <0.8.0 || 0.8.19"
    @return: a specifier set per alternative of the range. A version satisfies the range if it is in one of them
    """
    specifier_sets = []
    for alternative in version_range.split('||'):
        hyphen_match = HYPHEN_RANGE_RE.match(alternative)
        if hyphen_match:
            specifiers = __hyphen_range_to_specifiers(hyphen_match.group(1), hyphen_match.group(2))
        else:
            # ">= 0.5.0" is the same comparator as ">=0.5.0"
            comparators = re.sub(r'(\^|~|>=|<=|>|<|=)\s+', r'\1', alternative).split()
            specifiers = [spec for comparator in comparators for spec in __comparator_to_specifiers(comparator)]
        try:
            specifier_sets.append(SpecifierSet(','.join(specifiers)))
        except InvalidSpecifier as e:
            raise Util.VerifierUserInputError(f"cannot parse the version range \"{version_range}\"", orig=e)
    return specifier_sets


def version_satisfies(version: str, version_range: str) -> bool:
    try:
        candidate = Version(get_base_version(version))
    except InvalidVersion:
        bytecode_logger.debug(f"ignoring the compiler version {version}, it is not a valid version")
        return False
    return any(candidate in specifier_set for specifier_set in npm_range_to_specifier_sets(version_range))


def is_version_in(version: str, versions: Sequence[str]) -> bool:
    return get_base_version(version) in {get_base_version(v) for v in versions}


def is_version_range(version: str) -> bool:
    return not re.match(Util.version_triplet_regex(suffix=r'([+-]\S*)?$'), version.strip())


def get_matching_versions(deployed_bytecode: Bytecode, configured_versions: Sequence[str]) -> List[str]:
    """
    @param deployed_bytecode: the bytecode found on chain
    @param configured_versions: the compiler versions of the project, possibly with commit hashes
    @return: the configured versions that may have produced the bytecode, in the configured order
    """
    inferred_version = deployed_bytecode.get_version()
    if inferred_version is None or deployed_bytecode.is_ovm():
        return list(configured_versions)

    if is_version_range(inferred_version):
        return [version for version in configured_versions if version_satisfies(version, inferred_version)]

    return [version for version in configured_versions
            if get_base_version(version) == get_base_version(inferred_version)]


def get_and_check_matching_versions(deployed_bytecode: Bytecode, configured_versions: Sequence[str],
                                    network: str) -> List[str]:
    """
    @raise CompilerVersionsMismatchError: no configured version can produce a non OVM bytecode
    """
    matching_versions = get_matching_versions(deployed_bytecode, configured_versions)
    bytecode_logger.debug(f"the deployed bytecode declares the compiler {deployed_bytecode.get_version()}, matching "
                          f"configured versions: {matching_versions}")
    if not matching_versions and not deployed_bytecode.is_ovm():
        raise CompilerVersionsMismatchError(list(configured_versions), deployed_bytecode.get_version_description(),
                                            network)
    return matching_versions


def get_configured_compiler_versions(solidity_config: Any) -> List[str]:
    """
    Collects the compiler versions of the solidity section of the conf file, without duplicates.
    The section is either a single version, a list of compilers, or an object:
        {"compilers": ["0.8.19", {"version": "0.7.6"}], "overrides": {"contracts/Old.sol": {"version": "0.6.12"}}}
    """
    def version_of(compiler: Any) -> str:
        if isinstance(compiler, dict):
            if "version" not in compiler:
                raise Util.VerifierUserInputError(f"a compiler in the solidity section has no version: {compiler}")
            return str(compiler["version"])
        return str(compiler)

    compilers: List[Any]
    overrides: Dict[str, Any] = {}
    if solidity_config is None:
        return []
    if isinstance(solidity_config, list):
        compilers = solidity_config
    elif isinstance(solidity_config, dict) and ("compilers" in solidity_config or "overrides" in solidity_config):
        compilers = list(solidity_config.get("compilers", []))
        overrides = solidity_config.get("overrides", {})
    else:
        compilers = [solidity_config]

    versions: List[str] = []
    for compiler in compilers + list(overrides.values()):
        version = version_of(compiler)
        if version not in versions:
            versions.append(version)
    return versions
