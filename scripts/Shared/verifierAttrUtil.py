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
import argparse
import logging
from typing import Any, NoReturn, Dict, Optional, Callable, List
from Shared import verifierUtils as Util
from enum import auto
from dataclasses import dataclass, field
from rich.console import Console
from rich.table import Table
from rich.text import Text


APPEND = 'append'
STORE_TRUE = 'store_true'
MULTIPLE_OCCURRENCES = '*'
ONE_OR_MORE_OCCURRENCES = '+'
OPTIONAL = '?'

attributes_logger = logging.getLogger("attributes")


def default_validation(x: Any) -> Any:
    return x


class UniqueStore(argparse.Action):
    """
    This class makes the argparser throw an error for a given flag if it was inserted more than once
    """

    def __call__(self, parser: argparse.ArgumentParser, namespace: argparse.Namespace, values: Any,  # type: ignore
                 option_string: str) -> None:
        if getattr(namespace, self.dest, self.default) is not self.default:
            parser.error(f"{option_string} appears several times.")
        setattr(namespace, self.dest, values)


class ContextAttributeParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)

    def error(self, message: str) -> NoReturn:
        prefix = 'unrecognized arguments: '
        is_single_dash_flag = False

        if message.startswith(prefix):
            flag = message[len(prefix):].split()[0]
            if len(flag) > 1 and flag[0] == '-' and flag[1] != '-':
                is_single_dash_flag = True
        self.print_usage(sys.stderr)
        if is_single_dash_flag:
            Console().print(f"{Util.NEW_LINE}[bold red]Please remember, CLI flags should be preceded with "
                            f"double dashes!{Util.NEW_LINE}")
        raise Util.VerifierUserInputError(message)


class AttrArgType(Util.NoValEnum):
    STRING = auto()
    BOOLEAN = auto()
    LIST = auto()
    MAP = auto()


@dataclass
class AttributeDefinition:
    attr_validation_func: Callable = default_validation
    help_msg: str = argparse.SUPPRESS
    # args for argparse's add_attribute passed as is
    argparse_args: Dict[str, Any] = field(default_factory=dict)
    arg_type: AttrArgType = AttrArgType.STRING
    default_desc: Optional[str] = None  # A description of the default behavior
    positional: bool = False  # positional arguments have no dashes and cannot be set in a conf file
    conf_only: bool = False  # can be set only in a conf file, there is no matching CLI flag
    name: str = ''  # the name of the CONST will be set during set_attribute_list()

    def get_conf_key(self) -> str:
        return self.name.lower()

    def get_flag(self) -> str:
        dashes = '' if self.positional else '--'
        return dashes + str(self.name.lower())

    def validate_value(self, value: Any, cli_flag: bool = True) -> None:
        if self.attr_validation_func is not None:
            try:
                self.attr_validation_func(value)
            except Util.VerifierUserInputError as e:
                msg = f"attribute/flag '{self.name.lower()}': {e}"
                if cli_flag and isinstance(value, str) and value and value.strip()[0] == '-':
                    flag_error = f'{value}: Please remember, CLI flags should be preceded with double dashes. ' \
                                 f'{Util.NEW_LINE}For more help run the tool with the option --help'
                    msg = flag_error + msg
                raise Util.VerifierUserInputError(msg) from None


class Attributes:

    _attribute_list: List[AttributeDefinition] = []
    _all_conf_names: List[str] = []

    @classmethod
    def attribute_list(cls) -> List[AttributeDefinition]:
        if not cls._attribute_list:
            cls.set_attribute_list()
        return cls._attribute_list

    @classmethod
    def all_conf_names(cls) -> List[str]:
        if not cls._attribute_list:
            cls.set_attribute_list()
        return cls._all_conf_names

    @classmethod
    def cli_attribute_list(cls) -> List[AttributeDefinition]:
        return [attr for attr in cls.attribute_list() if not attr.conf_only]

    @classmethod
    def print_attr_help(cls) -> None:

        type_col_header = "Type"
        type_col_width = len(type_col_header)
        desc_col_width = 37
        default_col_width = Util.HELP_TABLE_WIDTH - Util.MAX_FLAG_LENGTH - type_col_width - desc_col_width

        table = Table(padding=(0, 0), show_lines=True, header_style="bold")
        table.add_column(Text("Flag"), no_wrap=True, width=Util.MAX_FLAG_LENGTH)
        table.add_column(Text(type_col_header), width=type_col_width)
        table.add_column(Text("Description"), width=desc_col_width)
        table.add_column(Text("Default"), width=default_col_width)

        for attr in cls.attribute_list():
            if attr.help_msg != Util.SUPPRESS_HELP_MSG and not attr.positional:
                default = attr.default_desc if attr.default_desc else ""
                type_str = str(attr.arg_type).upper()[0]  # We show boolean as B etc
                flag_name = Text(attr.get_conf_key(), style="bold")
                table.add_row(flag_name, type_str, attr.help_msg, default)
        console = Console()
        console.print(table)

    @classmethod
    def set_attribute_list(cls) -> None:
        def set_name(name: str) -> AttributeDefinition:
            v = getattr(cls, name)
            v.name = name
            return v

        if not cls._attribute_list:
            # positional arguments keep their declaration order
            names = [name for name in cls.__dict__ if name.isupper()]
            for base in cls.__mro__[1:]:
                names += [name for name in base.__dict__ if name.isupper() and name not in names]
            cls._attribute_list = [set_name(name) for name in names]
            cls._all_conf_names = [attr.get_conf_key() for attr in cls._attribute_list if not attr.positional]
            attributes_logger.debug(f"{cls.__name__} defines {len(cls._attribute_list)} attributes")
