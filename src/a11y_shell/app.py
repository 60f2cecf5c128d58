from __future__ import annotations

import logging
import sys
from typing import Callable, Dict, List, Optional, Tuple

from a11y_shell.core.context.shell_context import ShellContext
from a11y_shell.core.handlers.audit_handler import audit_help_text, handle_audit
from a11y_shell.core.handlers.config_handler import USAGE as config_help_text
from a11y_shell.core.handlers.config_handler import handle_config
from a11y_shell.core.managers.config_manager import config_manager
from a11y_shell.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)

Handler = Callable[[List[str], ShellContext], int]

COMMANDS: Dict[str, Handler] = {
    "audit": handle_audit,
    "config": handle_config,
}

# Operators for chaining commands in one invocation, e.g.
#   a11y-audit config set sampling.max_sample_size 50 ";" audit run --url example.com
_OPS = {";", "&&"}

help_text = f"""
a11y-audit - sitemap based accessibility auditing with adaptive sampling

Commands:
{audit_help_text}

{config_help_text}

Chain commands with ';' (always run) or '&&' (run only if the previous one succeeded).
""".strip()


def split_commands(argv: List[str]) -> List[Tuple[str, List[str], Optional[str]]]:
    """
    Splits the argument vector into (command, args, op_before) segments.
    """
    out: List[Tuple[str, List[str], Optional[str]]] = []
    current: List[str] = []
    op_before: Optional[str] = None
    for tok in argv:
        if tok in _OPS:
            if current:
                out.append((current[0], current[1:], op_before))
            current, op_before = [], tok
            continue
        current.append(tok)
    if current:
        out.append((current[0], current[1:], op_before))
    return out


def execute_sequence(commands: List[Tuple[str, List[str], Optional[str]]], ctx: ShellContext) -> int:
    last_code = 0
    for name, args, op_before in commands:
        if op_before == "&&" and last_code != 0:
            logger.debug("Skipping '%s' because the previous command failed.", name)
            continue

        handler = COMMANDS.get(name)
        if handler is None:
            print(f"Unknown command: '{name}'. Type 'help' for commands.")
            last_code = 1
            continue
        last_code = handler(args, ctx)
    return last_code


def main(argv: Optional[List[str]] = None) -> int:
    """Entrypoint for running a11y-audit from the command line."""
    configure_logger(
        config_manager.get_nested("debug.level", "INFO"),
        config_manager.get_nested("debug.module_levels", {}),
        config_manager.get_nested("debug.silenced_loggers", {}),
    )

    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] in ("help", "-h", "--help"):
        print(help_text)
        return 0

    ctx = ShellContext()
    try:
        return execute_sequence(split_commands(argv), ctx)
    finally:
        ctx.close()


if __name__ == "__main__":
    sys.exit(main())
