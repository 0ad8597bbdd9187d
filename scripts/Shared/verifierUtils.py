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

import json
import re
import sys
from enum import Enum
import urllib3.util

from typing import Any, Dict, List, Optional, Tuple
from pathlib import Path

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))
import logging
from rich.console import Console

CONSOLE = Console()

io_logger = logging.getLogger("file")

BASH_ORANGE_COLOR = "\033[33m"
BASH_END_COLOR = "\033[0m"
BASH_GREEN_COLOR = "\033[32m"
BASH_RED_COLOR = "\033[31m"

ENVVAR_ETHERSCAN_API_KEY = "ETHERSCAN_API_KEY"
VERIFIER_INTERNAL_ROOT = Path(".verifier_internal")
DEBUG_LOG_FILE = Path("verifier_debug_log.txt")
VERIFY_CONTRACT_APP = "verifyContract"

NEW_LINE = '\n'  # for new lines in f strings
CONF_EXT = '.conf'

SUPPRESS_HELP_MSG = "==SUPPRESS=="
MAX_FLAG_LENGTH = 31
HELP_TABLE_WIDTH = 97


def get_debug_log_file() -> Path:
    if VERIFIER_INTERNAL_ROOT.is_dir():
        return VERIFIER_INTERNAL_ROOT / DEBUG_LOG_FILE
    return DEBUG_LOG_FILE


def reset_verifier_internal_dir() -> None:
    safe_create_dir(VERIFIER_INTERNAL_ROOT)


class VerifierUserInputError(Exception):
    def __init__(self, message: str, orig: Optional[Exception] = None, more_info: str = '') -> None:
        super().__init__(message)
        self.orig = orig
        self.more_info = more_info


def __colored_text(txt: str, color: str) -> str:
    return color + txt + BASH_END_COLOR


def orange_text(txt: str) -> str:
    return __colored_text(txt, BASH_ORANGE_COLOR)


def red_text(txt: str) -> str:
    return __colored_text(txt, BASH_RED_COLOR)


def green_text(txt: str) -> str:
    return __colored_text(txt, BASH_GREEN_COLOR)


def print_completion_message(txt: str, flush: bool = False) -> None:
    print(green_text(txt), flush=flush)


def print_rich_link(link: str) -> str:
    return f"[link={link}]{link}[/link]"


def safe_create_dir(path: Path) -> None:
    if path.is_dir():
        io_logger.debug(f"directory {path} already exists")
        return
    path.mkdir(parents=True, exist_ok=True)


def read_json_file(file_name: Path) -> Dict[str, Any]:
    with file_name.open() as json_file:
        json_obj = json.load(json_file)
        return json_obj


class NoValEnum(Enum):
    """
    A class for an enum where the numerical value has no meaning.
    """

    def __repr__(self) -> str:
        """
        Do not print the value of this enum, it is meaningless
        """
        return f'<{self.__class__.__name__}.{self.name}>'

    @classmethod
    def values(cls) -> List[str]:
        return list(map(lambda c: str(c), cls))  # type: ignore

    def __str__(self) -> str:
        return self.name.lower()


def strip_hex_prefix(s: str) -> str:
    return re.sub(r'^0[xX]', '', s)


def version_triplet_regex(prefix: str = "", suffix: str = "") -> str:
    """
    @return: the regex pattern for a version triplet (xx.yy.zz)
    """
    return fr'^{prefix}(\d+)\.(\d+)\.(\d+){suffix}'


def get_fully_qualified_name(source_name: str, contract_name: str) -> str:
    return f"{source_name}:{contract_name}"


def is_fully_qualified_name(name: str) -> bool:
    return ":" in name


def parse_fully_qualified_name(fully_qualified_name: str) -> Tuple[str, str]:
    """
    Splits "contracts/Lib.sol:Lib" into ("contracts/Lib.sol", "Lib"). Source names may contain colons, the contract
    name never does
    """
    source_name, _, contract_name = fully_qualified_name.rpartition(":")
    return source_name, contract_name


def is_valid_url(parsed_url: urllib3.util.Url) -> bool:
    """
    This returns true if the given URL string is a valid URL, and false otherwise.
    """
    try:
        return all([parsed_url.scheme, parsed_url.netloc])
    except Exception:
        return False
