"""sessionscope CLI - find and follow Claude Code sessions.

Uses tyro for type-driven CLI generation from dataclasses.
"""

from __future__ import annotations

from typing import Annotated

import tyro

from sessionscope.cli.commands.debug import Debug
from sessionscope.cli.commands.resolve import Resolve
from sessionscope.cli.commands.tail import Tail
from sessionscope.cli.commands.watch import Watch

# Type aliases for subcommand annotations
_Resolve = Annotated[Resolve, tyro.conf.subcommand("resolve")]
_Debug = Annotated[Debug, tyro.conf.subcommand("debug")]
_Watch = Annotated[Watch, tyro.conf.subcommand("watch")]
_Tail = Annotated[Tail, tyro.conf.subcommand("tail")]

Command = _Resolve | _Debug | _Watch | _Tail


def main() -> int:
    """Entry point for the CLI."""
    # configure structlog (respects SESSIONSCOPE_DEBUG env var)
    from sessionscope.logging_config import configure_logging

    configure_logging()

    try:
        cmd = tyro.cli(
            Command,
            prog="sessionscope",
            description="Find and follow Claude Code session transcripts.",
        )
        return cmd.run()
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        from sessionscope import console

        console.error(str(e))
        return 1
