from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from rich.console import Console

from surfex import TOOL_NAME, TOOL_VERSION
from surfex.config import DEFAULT_CONCURRENCY, DEFAULT_RESULT_FILE, MIN_CONCURRENCY, MODE_PRESETS, HuntConfig
from surfex.engine import run_hunt
from surfex.errors import ConfigError, PersistenceError
from surfex.logs import console, logger, setup_logging
from surfex.report import print_hunt
from surfex.storage import create_template, load_hunt, save_hunt

# =====================================
# UI / Banner
# =====================================


def render_banner(version: str, name: str) -> str:
    title = f" {name} v{version} "
    sub = " ports · paths · subdomains "
    inner = max(len(title), len(sub)) + 4
    return (
        f"\n[bold cyan]╔{'═' * inner}╗[/bold cyan]\n"
        f"[bold cyan]║[/bold cyan][bold white]{title.center(inner)}[/bold white][bold cyan]║[/bold cyan]\n"
        f"[bold cyan]║[/bold cyan][dim]{sub.center(inner)}[/dim][bold cyan]║[/bold cyan]\n"
        f"[bold cyan]╚{'═' * inner}╝[/bold cyan]\n"
    )


def _read_wordlist(path: str) -> List[str]:
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        words = [line.strip().lstrip("/") for line in f if line.strip() and not line.startswith("#")]
    # keep order, drop repeats
    return list(dict.fromkeys([""] + words))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="surfex", description=f"{TOOL_NAME} — attack surface hunter")
    parser.add_argument("-f", "--file", default=DEFAULT_RESULT_FILE, help=f"Scope and results file (default: {DEFAULT_RESULT_FILE})")
    parser.add_argument("-p", "--print", action="store_true", dest="print_results", help="Print current results instead of hunting")
    parser.add_argument("-a", "--all", action="store_true", dest="show_all", help="With --print, also show paths with status >= 300")

    parser.add_argument("-s", "--subdomains", action="store_true", help="Hunt subdomains with subfinder")
    parser.add_argument("--scan", action="store_true", help="Run XSS and CRLF checks on promising responses")
    parser.add_argument("-c", "--concurrency", "--threads", type=int, default=DEFAULT_CONCURRENCY, dest="concurrency",
                        help=f"Maximum concurrent connections (default: {DEFAULT_CONCURRENCY}, minimum: {MIN_CONCURRENCY})")
    parser.add_argument("--mode", choices=sorted(MODE_PRESETS), help="Scan mode presets")
    parser.add_argument("--timeout", type=float, default=10.0, help="HTTP timeout in seconds, redirects included (default: 10)")
    parser.add_argument("--connect-timeout", type=float, default=1.0, help="TCP connect timeout in seconds (default: 1)")
    parser.add_argument("--cooldown", type=float, default=60.0, help="Seconds to leave a port alone after a 429 (default: 60)")
    parser.add_argument("--max-time", type=float, help="Stop after this many seconds and save what was found")
    parser.add_argument("--dns-resolver", help="Custom DNS resolver (e.g., 1.1.1.1)")
    parser.add_argument("--no-verify", action="store_true", help="Disable TLS certificate verification")
    parser.add_argument("-w", "--wordlist", help="File with paths to try on HTTP ports (one per line)")

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("--silent", action="store_true", help="No banner and no console logging")
    parser.add_argument("--log-file", default="surfex.log", help="Log file (default: surfex.log)")
    return parser


def config_from_args(args: argparse.Namespace) -> HuntConfig:
    config = HuntConfig(
        result_file=args.file,
        concurrency=args.concurrency,
        subdomains=args.subdomains,
        scan=args.scan,
        http_timeout=args.timeout,
        connect_timeout=args.connect_timeout,
        rate_limit_cooldown=args.cooldown,
        max_time=args.max_time,
        nameserver=args.dns_resolver,
        verify_ssl=not args.no_verify,
    )
    if args.wordlist:
        config.wordlist = _read_wordlist(args.wordlist)
    return config.apply_mode(args.mode).validate()


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, log_file=args.log_file, silent=args.silent)

    try:
        config = config_from_args(args)
    except ConfigError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        return 1
    except OSError as e:
        console.print(f"[bold red]❌ Cannot read wordlist: {e}[/bold red]")
        return 1

    if not os.path.exists(args.file):
        try:
            create_template(args.file)
        except PersistenceError as e:
            console.print(f"[bold red]❌ {e}[/bold red]")
            return 1
        console.print(f"[green]File {args.file} created, add your scope to it and run again.[/green]")
        return 0

    try:
        hunt = load_hunt(args.file)
    except PersistenceError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        return 1

    if args.print_results:
        print_hunt(hunt, show_all=args.show_all, console=Console())
        return 0

    if not args.silent:
        console.print(render_banner(TOOL_VERSION, TOOL_NAME))
    if not hunt.scope and not hunt.targets:
        console.print(f"[yellow]Scope of {args.file} is empty, nothing to hunt.[/yellow]")
        return 0

    status = 0
    try:
        await run_hunt(hunt, config)
    except asyncio.CancelledError:
        console.print("\n[red]Interrupted, saving what was found so far.[/red]")
        status = 130
    finally:
        # also on errors and on the cancellation asyncio.run sends for Ctrl-C
        saved = _save(hunt, args.file)
    if not saved:
        return 1
    return status


def _save(hunt, path: str) -> bool:
    try:
        save_hunt(hunt, path)
    except PersistenceError as e:
        logger.error("%s", e)
        console.print(f"[bold red]❌ {e}[/bold red]")
        return False
    return True


def run() -> None:
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        console.print("\n[red]Interrupted by user.[/red]")
        code = 130
    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        logger.exception("Fatal error in main")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    run()
