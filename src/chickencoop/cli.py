# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""CLI for the chicken coop controller.

This module provides the command-line entry point that builds the coop from
its configuration, starts the periodic scheduler and exposes the command
handler either interactively or over a TCP control port.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

from prompt_toolkit.patch_stdout import patch_stdout

from .commands import CommandHandler
from .config import CoopConfig, build_coop, load_config
from .exceptions import CoopError
from .prompt import CLI_HISTORY_FILE as HISTORY_FILE, InteractiveSession
from .scheduler import CoopScheduler

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DEFAULT_CONTROL_PORT = 8000


def _stdin_available() -> bool:
    try:
        if sys.stdin and sys.stdin.fileno() >= 0:
            os.fstat(sys.stdin.fileno())
            return True
    except (OSError, ValueError, AttributeError):
        pass
    return False


def format_reply(success: bool, message: str) -> bytes:
    """Encode a command result as one control protocol line."""
    # Escape newlines so multi-line results stay on one line
    escaped = message.replace("\\", "\\\\").replace("\n", "\\n")
    prefix = "OK" if success else "ERROR"
    return f"{prefix}: {escaped}\n".encode()


async def run_coop(
    config: CoopConfig,
    host: str = "127.0.0.1",
    daemon: bool = False,
    control_port: Optional[int] = None,
    run_for: Optional[float] = None,
    history_file: Optional[str] = None,
):
    """Run the coop controller until shutdown.

    Args:
        config: Parsed configuration
        host: Address to bind the control server
        daemon: If True, run without interactive input
        control_port: Port for control commands (daemon mode)
        run_for: Maximum run time in seconds
        history_file: Prompt history file, or "none" for in-memory history
    """
    coop = build_coop(config)
    scheduler = CoopScheduler(coop, interval=config.interval)

    stop_event = asyncio.Event()
    cmd_handler = CommandHandler(coop, stop_callback=stop_event.set, scheduler=scheduler)

    await scheduler.start()

    print(
        f"Coop controller started ({'automatic' if coop.automatic else 'manual'} mode, "
        f"checking every {config.interval:g}s)"
    )
    if control_port:
        print(f"Control port: {control_port}")

    control_server = None
    if control_port:

        async def handle_control_client(
            reader: asyncio.StreamReader, writer: asyncio.StreamWriter
        ):
            """Handle a control connection."""
            addr = writer.get_extra_info("peername")
            logger.info(f"Control connection from {addr}")
            try:
                while True:
                    line = await reader.readline()
                    if not line:
                        break
                    cmd = line.decode().strip()
                    if not cmd:
                        continue

                    result = await cmd_handler.execute(cmd)
                    writer.write(format_reply(result.success, result.message))
                    await writer.drain()

                    if stop_event.is_set():
                        break
            except (ConnectionError, UnicodeDecodeError) as e:
                logger.error(f"Control client error: {e}")
            finally:
                writer.close()
                await writer.wait_closed()
                logger.info(f"Control connection closed from {addr}")

        control_server = await asyncio.start_server(
            handle_control_client, host, control_port
        )
        logger.info(f"Control server listening on {host}:{control_port}")

    input_task: Optional[asyncio.Task] = None
    stdout_ctx = None

    if not daemon:
        if _stdin_available():
            print("=" * 65)
            print(cmd_handler.get_help())
            print("=" * 65)
            print()

            session = InteractiveSession.create(
                cmd_handler.commands,
                history_file=history_file or str(HISTORY_FILE),
                is_automatic=lambda: coop.automatic,
            )

            async def interactive_input_loop():
                try:
                    async for line in session.input_loop(stop_check=stop_event.is_set):
                        result = await cmd_handler.execute(line)
                        if result.message:
                            print(f">>> {result.message}")
                        if stop_event.is_set():
                            break
                except asyncio.CancelledError:
                    pass
                finally:
                    # EOF ends the run
                    stop_event.set()

            # Keep log output from clobbering the prompt
            stdout_ctx = patch_stdout()
            stdout_ctx.__enter__()

            root_logger = logging.getLogger()
            for handler in root_logger.handlers[:]:
                if isinstance(handler, logging.StreamHandler):
                    root_logger.removeHandler(handler)
            new_handler = logging.StreamHandler(sys.stderr)
            new_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root_logger.addHandler(new_handler)

            input_task = asyncio.create_task(interactive_input_loop())
        else:
            logger.warning("stdin not available, running in daemon mode")

    timeout_task: Optional[asyncio.Task] = None
    if run_for:

        async def timeout_shutdown():
            await asyncio.sleep(run_for)
            logger.info(f"Run time ({run_for}s) elapsed, shutting down")
            stop_event.set()

        timeout_task = asyncio.create_task(timeout_shutdown())

    try:
        await stop_event.wait()
    except asyncio.CancelledError:
        pass
    finally:
        for task in (input_task, timeout_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        if stdout_ctx:
            stdout_ctx.__exit__(None, None, None)
        if control_server:
            control_server.close()
            await control_server.wait_closed()
        await scheduler.stop()


def main():
    """CLI entry point for the coop controller."""
    parser = argparse.ArgumentParser(
        description="Chicken coop door controller"
    )
    parser.add_argument(
        "--config", "-c",
        metavar="FILE",
        help="YAML configuration file (default: built-in defaults)"
    )
    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Address to bind the control port (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--daemon", "-D",
        nargs="?",
        type=int,
        const=DEFAULT_CONTROL_PORT,
        default=None,
        metavar="CONTROL_PORT",
        help="Run in daemon mode (no interactive input). "
             f"Optionally specify control port (default: {DEFAULT_CONTROL_PORT})."
    )
    parser.add_argument(
        "--run-for", "-r",
        type=float,
        metavar="SECONDS",
        help="Maximum run time in seconds"
    )
    parser.add_argument(
        "--history",
        metavar="FILE",
        default=str(HISTORY_FILE),
        help=f"History file path, or 'none' to disable (default: {HISTORY_FILE})"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format=LOG_FORMAT,
    )

    try:
        config = load_config(args.config) if args.config else CoopConfig()
        # Surface malformed conditions before anything starts
        build_coop(config)
    except CoopError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    daemon = args.daemon is not None

    try:
        asyncio.run(run_coop(
            config,
            host=args.host,
            daemon=daemon,
            control_port=args.daemon,
            run_for=args.run_for,
            history_file=args.history,
        ))
    except KeyboardInterrupt:
        print("\nCoop controller stopped.")


if __name__ == "__main__":
    main()
