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
from typing import Dict, List, Optional
from pathlib import Path
from rich.console import Console

scripts_dir_path = Path(__file__).parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))
from Shared import verifierUtils as Util
from Shared.verifierLogging import LoggingManager

import ContractVerifier.verifierContext as Ctx
from ContractVerifier.verifierChains import print_supported_networks
from ContractVerifier.verifierOrchestrator import VerificationOutcome, verify_contract

# logger for issues regarding the general run flow.
# Also serves as the default logger for errors originating from unexpected places.
run_logger = logging.getLogger("run")


def run_verifier(args: List[str]) -> Optional[Dict[str, VerificationOutcome]]:
    """
    The main function that is responsible for the general flow of the script.
    The general flow is:
    1. Parse program arguments and the conf file
    2. Print the supported networks, or verify the contract on every enabled back-end
    """
    Util.reset_verifier_internal_dir()
    logging_manager = LoggingManager()

    config, task_args = Ctx.get_config(args)
    logging_manager.set_log_level_and_format(is_quiet=config.quiet, debug=config.debug,
                                             debug_topics=list(config.debug_topics),
                                             show_debug_topics=config.show_debug_topics)
    if not config.debug:
        sys.tracebacklimit = 0  # no traces for user input errors

    if task_args.list_networks:
        print_supported_networks(config.etherscan.custom_chains)
        return None

    outcomes = verify_contract(config, task_args)
    run_logger.debug(f"verification outcomes: {outcomes}")
    return outcomes


def entry_point() -> None:
    """
    This function is the entry point of the verifyContract console script, as well as this script.
    It is important this function gets no arguments!
    """
    try:
        run_verifier(sys.argv[1:])
        sys.exit(0)
    except KeyboardInterrupt:
        Console().print("[bold red]\nInterrupted by user")
        sys.exit(1)
    except Util.VerifierUserInputError as e:
        if e.orig:
            print(f"\n{str(e.orig).strip()}")
        if e.more_info:
            print(f"\n{e.more_info.strip()}")
        Console().print(f"\n{e}\n", style="bold red", markup=False)
        sys.exit(1)


if __name__ == '__main__':
    entry_point()
