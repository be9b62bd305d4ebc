"""
Doodle Digger — Google profile-picture artwork extractor.

Usage:
  python -m doodle_digger.main setup              # sign in once, session is kept
  python -m doodle_digger.main run                # walk every collection
  python -m doodle_digger.main run --output out/ --headless

Exit codes:
  0  traversal finished
  1  any error during setup or traversal
  2  no saved session (run `setup` first)
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from selenium.common.exceptions import WebDriverException

from .browser import SeleniumMenuDom, create_driver, open_picker, require_session, run_setup
from .config import Settings
from .errors import AuthenticationMissing, DiggerError, NavigationError
from .navigator import NavigationController

console = Console()
logger = logging.getLogger(__name__)

EXIT_OK           = 0
EXIT_FAILED       = 1
EXIT_NO_SESSION   = 2


# ── CLI ───────────────────────────────────────────────────────────────────────

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    # Accepted before or after the subcommand. SUPPRESS: an absent flag never resets a given one.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--profile", default=argparse.SUPPRESS, help="Browser profile dir (default: persistent_context)")
    common.add_argument("--verbose", "-v", action="store_true", default=argparse.SUPPRESS, help="Debug logging")

    parser = argparse.ArgumentParser(
        description="Doodle Digger — extract every Google profile-picture preset as a JPEG",
        parents=[common],
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("setup", parents=[common], help="Sign in to Google once and keep the session")

    run = sub.add_parser("run", parents=[common], help="Walk the picker and save every preset")
    run.add_argument("--output", default=None, help="Output root (default: images)")
    run.add_argument("--headless", action="store_true", default=None, help="Run Chrome headless")

    args = parser.parse_args(argv)
    args.profile = getattr(args, "profile", None)
    args.verbose = getattr(args, "verbose", False)
    return args


def load_settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(
        profile_dir=args.profile,
        output_dir=getattr(args, "output", None),
        headless=getattr(args, "headless", None),
    )


# ── Commands ──────────────────────────────────────────────────────────────────

def cmd_setup(settings: Settings) -> int:
    console.print(Rule("[bold]🔧 Authentication setup[/bold]"))
    try:
        run_setup(settings)
    except (WebDriverException, OSError) as e:
        console.print(f"[bold red]❌ Setup failed:[/bold red] {escape(str(e))}")
        return EXIT_FAILED
    console.print("[green]🎉 Setup complete! You can now run the `run` command.[/green]")
    return EXIT_OK


def failure_context(controller: Optional[NavigationController]) -> str:
    """' [depth=..., path=...]' for where the cursor was, or '' before traversal began."""
    if controller is None:
        return ""
    where = [f"depth={controller.depth.name}"]
    if str(controller.path):
        where.append(f"path={controller.path}")
    return f" [{', '.join(where)}]"


def cmd_run(settings: Settings) -> int:
    console.print(Rule("[bold magenta]⛏️  Doodle Digger — A Google Profile Picture Extractor[/bold magenta]"))
    try:
        require_session(settings)
    except AuthenticationMissing as e:
        console.print(f"[bold red]❌ {escape(str(e))}[/bold red]")
        return EXIT_NO_SESSION

    console.print("🚀 Launching browser...")
    t0 = time.time()
    try:
        driver = create_driver(settings)
    except WebDriverException as e:
        console.print(f"[bold red]❌ Could not start Chrome:[/bold red] {escape(str(e.msg))}")
        return EXIT_FAILED

    controller: Optional[NavigationController] = None
    try:
        dom = SeleniumMenuDom(driver, script_timeout=settings.script_timeout)
        controller = NavigationController(dom, settings)
        open_picker(dom, settings)
        summary = controller.run()
    except NavigationError as e:
        logger.error(f"Navigation failed at depth={e.depth!r} path={e.path}")
        console.print(f"[bold red]❌ Error during extraction:[/bold red] {escape(str(e))}")
        return EXIT_FAILED
    except (DiggerError, WebDriverException, OSError) as e:
        where = failure_context(controller)
        logger.error(f"Extraction failed{where}: {e!r}")
        console.print(f"[bold red]❌ Error during extraction:[/bold red] {escape(str(e))}{escape(where)}")
        return EXIT_FAILED
    finally:
        console.print("🛑 Closing browser...")
        driver.quit()

    console.print(
        Panel(
            f"{summary.collections} collection(s) · {summary.classes} class(es) · "
            f"{summary.pictures} picture(s) · {summary.presets} preset(s)\n"
            f"{len(summary.artifacts)} image(s) in [bold]{settings.output_dir}[/bold] "
            f"— {time.time() - t0:.0f}s",
            title="[bold green]Done[/bold green]",
            border_style="green",
        )
    )
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        format="%(asctime)s — %(levelname)s — %(name)s — %(message)s",
        level=logging.DEBUG if args.verbose else logging.WARNING,
    )
    try:
        settings = load_settings(args)
    except ValidationError as e:
        console.print(f"[bold red]Error:[/bold red] invalid configuration\n{escape(str(e))}")
        return EXIT_FAILED

    if args.command == "setup":
        return cmd_setup(settings)
    return cmd_run(settings)


if __name__ == "__main__":
    sys.exit(main())
