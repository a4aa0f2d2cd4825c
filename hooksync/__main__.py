"""``python -m hooksync <command> [args]``"""

import argparse
import asyncio
import logging

from hooksync.config import get_settings
from hooksync.startup import shutdown_tasks, startup_tasks


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="hooksync", description="GitHub webhook sync and routing")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="status | setup [org] | url | pr | issue | ...")
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(message)s",
    )

    async def _run() -> None:
        runtime = await startup_tasks(settings)
        try:
            await runtime.plugin.run_command(args.command)
        finally:
            await shutdown_tasks(runtime)

    asyncio.run(_run())


if __name__ == "__main__":
    main()
