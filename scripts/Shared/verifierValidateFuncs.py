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

import os
import sys
import logging
import json5
import re
import urllib3.exceptions
import urllib3.util
from pathlib import Path
from typing import Dict, Any, List

scripts_dir_path = Path(__file__).parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))


from Shared import verifierUtils as Util


validation_logger = logging.getLogger("validation")

NETWORK_NAME_RE = re.compile(r'^[a-zA-Z0-9_\-]+$')


def validate_readable_file(filename: str, extensions: Any = '') -> str:
    file_path = Path(filename)
    if not file_path.exists():
        raise Util.VerifierUserInputError(f"file {filename} not found")
    if file_path.is_dir():
        raise Util.VerifierUserInputError(f"'{filename}' is a directory and not a file")
    if not os.access(filename, os.R_OK):
        raise Util.VerifierUserInputError(f"no read permissions for {filename}")
    if extensions and not filename.lower().endswith(extensions):
        raise Util.VerifierUserInputError(f"{filename} does not end with {extensions}")

    return filename


def validate_dir(dirname: str) -> str:
    dir_path = Path(dirname)
    if not dir_path.exists():
        raise Util.VerifierUserInputError(f"path {dirname} does not exist")
    if dir_path.is_file():
        raise Util.VerifierUserInputError(f"{dirname} is a file and not a directory")
    if not os.access(dirname, os.R_OK):
        raise Util.VerifierUserInputError(f"no read permissions to {dirname}")
    return dirname


def validate_conf_file(file_name: str) -> str:
    """
    Verifies that the conf file exists, can be read and has a .conf extension
    @param file_name: the file name
    @return: the name after confirming the .conf extension
    """
    validate_readable_file(file_name, Util.CONF_EXT)
    return file_name


def validate_json5_file(file: str) -> str:
    file_exists_and_readable(file)

    with open(file, 'r') as f:
        try:
            json5.load(f)
        except Exception as e:
            raise Util.VerifierUserInputError(f"Parsing error in JSON file {file}: {e}")
    return file


def file_exists_and_readable(file: str) -> str:
    p = Path(file)
    if not p.exists():
        raise Util.VerifierUserInputError(f"{p} does not exists")
    if not p.is_file():
        raise Util.VerifierUserInputError(f"{p} exists but is not a file")
    if not os.access(p, os.R_OK):
        raise Util.VerifierUserInputError(f"no read permissions for {p}")
    return file


def validate_url(url: str) -> str:
    try:
        parsed_url = urllib3.util.parse_url(url)
    except urllib3.exceptions.LocationParseError:
        raise Util.VerifierUserInputError(f"{url} not a valid URL") from None
    if not Util.is_valid_url(parsed_url):
        raise Util.VerifierUserInputError(f"{url} not a valid URL")
    if parsed_url.scheme not in ("http", "https"):
        raise Util.VerifierUserInputError(f"url {url} has an unsupported scheme {parsed_url.scheme}")
    return url


def validate_network_name(name: str) -> str:
    if not NETWORK_NAME_RE.match(name):
        raise Util.VerifierUserInputError(f"invalid network name \"{name}\": network names may only contain letters, "
                                          "digits, dashes or underscores")
    return name


def validate_solc_version(version: str) -> str:
    """
    A configured compiler version is a version triplet, optionally followed by a commit hash,
    e.g. 0.8.19 or 0.8.19+commit.7dd6d404
    """
    if not re.match(Util.version_triplet_regex(suffix=r'(\+commit\.[0-9a-f]+)?$'), version):
        raise Util.VerifierUserInputError(f"invalid compiler version \"{version}\", expected a version such as "
                                          "0.8.19 or 0.8.19+commit.7dd6d404")
    return version


def validate_non_empty_string(value: Any) -> Any:
    if not isinstance(value, str) or not value.strip():
        raise Util.VerifierUserInputError(f"expected a non empty string, got {value!r}")
    return value


def validate_api_key(value: Any) -> Any:
    """
    An api key is either a single key for all networks or a map from a network name to its key
    """
    if isinstance(value, dict):
        for network, key in value.items():
            validate_network_name(network)
            validate_non_empty_string(key)
        return value
    return validate_non_empty_string(value)


def validate_custom_chains(chains: Any) -> List[Dict[str, Any]]:
    """
    Each custom chain looks like:
        {"network": "myNet", "chainId": 1234, "urls": {"apiURL": "https://...", "browserURL": "https://..."}}
    """
    if not isinstance(chains, list):
        raise Util.VerifierUserInputError(f"customChains must be a list, got {chains!r}")
    for chain in chains:
        if not isinstance(chain, dict):
            raise Util.VerifierUserInputError(f"a custom chain must be an object, got {chain!r}")
        missing = [key for key in ("network", "chainId", "urls") if key not in chain]
        if missing:
            raise Util.VerifierUserInputError(f"custom chain {chain} is missing the keys {', '.join(missing)}")
        validate_network_name(chain["network"])
        if not isinstance(chain["chainId"], int) or isinstance(chain["chainId"], bool) or chain["chainId"] <= 0:
            raise Util.VerifierUserInputError(f"the chainId of the custom chain {chain['network']} must be a positive "
                                              f"integer, got {chain['chainId']!r}")
        urls = chain["urls"]
        if not isinstance(urls, dict) or "apiURL" not in urls or "browserURL" not in urls:
            raise Util.VerifierUserInputError(f"the urls of the custom chain {chain['network']} must have both "
                                              "apiURL and browserURL")
        validate_url(urls["apiURL"])
        validate_url(urls["browserURL"])
    validation_logger.debug(f"validated {len(chains)} custom chains")
    return chains


def validate_boolean(value: Any) -> bool:
    if not isinstance(value, bool):
        raise Util.VerifierUserInputError(f"expected true or false, got {value!r}")
    return value


def __check_keys(section: str, conf: Any, known_keys: List[str]) -> Dict[str, Any]:
    if not isinstance(conf, dict):
        raise Util.VerifierUserInputError(f"{section} must be an object, got {conf!r}")
    unknown = [key for key in conf if key not in known_keys]
    if unknown:
        raise Util.VerifierUserInputError(f"unknown keys in {section}: {', '.join(unknown)}. "
                                          f"Known keys are {', '.join(known_keys)}")
    return conf


def validate_networks_conf(networks: Any) -> Dict[str, Any]:
    """
    The networks section maps a network name to its JSON-RPC endpoint:
        {"sepolia": {"url": "https://..."}}
    """
    if not isinstance(networks, dict):
        raise Util.VerifierUserInputError(f"networks must be an object, got {networks!r}")
    for name, network in networks.items():
        validate_network_name(name)
        __check_keys(f"network {name}", network, ["url"])
        if "url" not in network:
            raise Util.VerifierUserInputError(f"network {name} has no url")
        validate_url(network["url"])
    return networks


def validate_etherscan_conf(conf: Any) -> Dict[str, Any]:
    __check_keys("etherscan", conf, ["apiKey", "customChains", "enabled"])
    if "apiKey" in conf:
        validate_api_key(conf["apiKey"])
    if "customChains" in conf:
        validate_custom_chains(conf["customChains"])
    if "enabled" in conf:
        validate_boolean(conf["enabled"])
    return conf


def validate_sourcify_conf(conf: Any) -> Dict[str, Any]:
    __check_keys("sourcify", conf, ["enabled", "apiUrl", "browserUrl"])
    if "enabled" in conf:
        validate_boolean(conf["enabled"])
    for key in ("apiUrl", "browserUrl"):
        if key in conf:
            validate_url(conf[key])
    return conf


def validate_solidity_conf(conf: Any) -> Any:
    """
    The compilers used by the project, in one of the forms:
        "0.8.19"
        ["0.8.19", "0.7.6"]
        {"version": "0.8.19", "settings": {...}}
        {"compilers": [{"version": "0.8.19"}, ...], "overrides": {"contracts/A.sol": {"version": "0.7.6"}}}
    """
    def check_compiler(compiler: Any) -> None:
        if isinstance(compiler, str):
            validate_solc_version(compiler)
        elif isinstance(compiler, dict) and isinstance(compiler.get("version"), str):
            validate_solc_version(compiler["version"])
        else:
            raise Util.VerifierUserInputError(f"a compiler must be a version or an object with a version, "
                                              f"got {compiler!r}")

    if isinstance(conf, list):
        for compiler in conf:
            check_compiler(compiler)
    elif isinstance(conf, dict) and ("compilers" in conf or "overrides" in conf):
        __check_keys("solidity", conf, ["compilers", "overrides"])
        compilers = conf.get("compilers", [])
        overrides = conf.get("overrides", {})
        if not isinstance(compilers, list) or not isinstance(overrides, dict):
            raise Util.VerifierUserInputError("solidity.compilers must be a list and solidity.overrides an object")
        for compiler in compilers + list(overrides.values()):
            check_compiler(compiler)
    else:
        check_compiler(conf)
    return conf
