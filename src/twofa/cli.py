"""CLI entry point for twofa.

Usage:
    twofa code SECRET          # Print the current code
    twofa watch [SECRET ...]   # Live countdown, Enter regenerates
    twofa uri SECRET           # otpauth:// URI for QR enrollment
    twofa history [--clear]    # Show or clear remembered secrets
    twofa sync                 # Measure the clock offset
    twofa status               # Show configuration
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading

import click
from rich.console import Console
from rich.live import Live

from twofa.app import Authenticator
from twofa.auth.totp import generate_code, get_provisioning_uri
from twofa.clock import ClockSynchronizer
from twofa.config import load_slots_config, settings
from twofa.models import Rejection, SyncOk
from twofa.sink import ConsoleSink
from twofa.store import JsonFileStore, SecretHistory
from twofa.ticks import tick_info
from twofa.validation import validate

console = Console()


def _validated(raw: str) -> str:
    result = validate(raw)
    if isinstance(result, Rejection):
        raise click.BadParameter(result.message or "Secret is empty.", param_hint="SECRET")
    return result


def _slots() -> list[str]:
    """Slot names: TWOFA_SLOTS when set, else config/slots.yaml, else the default."""
    if "slots" in settings.model_fields_set:
        return settings.slots
    return load_slots_config() or settings.slots


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
def main(verbose: bool) -> None:
    """twofa — TOTP codes on a server-aligned countdown."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@main.command()
@click.argument("secret")
@click.option("--no-sync", is_flag=True, help="Use the local clock as is.")
def code(secret: str, no_sync: bool) -> None:
    """Print the current code for SECRET."""
    secret = _validated(secret)
    clock = ClockSynchronizer(settings.time_authority_url)
    if not no_sync:
        asyncio.run(clock.sync())
    now = clock.now_ms()
    info = tick_info(now, settings.period_s)
    value = generate_code(secret, now, settings.period_s, settings.digits)
    console.print(f"[bold green]{value}[/bold green]  ({info.seconds_left_display}s left)")


@main.command()
@click.argument("secret")
def uri(secret: str) -> None:
    """Print the otpauth:// URI for SECRET."""
    console.print(get_provisioning_uri(_validated(secret)), soft_wrap=True)


@main.command()
@click.option("--clear", is_flag=True, help="Forget all remembered secrets.")
def history(clear: bool) -> None:
    """Show remembered secrets, most recent first."""
    hist = SecretHistory(JsonFileStore(settings.store_path))
    if clear:
        hist.clear()
        console.print("Local history cleared.")
        return
    lines = hist.lines()
    if not lines:
        console.print("  (none)")
    for line in lines:
        console.print(f"  {line}")


@main.command()
def sync() -> None:
    """Measure the offset to the time authority."""
    clock = ClockSynchronizer(settings.time_authority_url)
    result = asyncio.run(clock.sync())
    if isinstance(result, SyncOk):
        console.print(f"Offset: [bold]{result.offset_ms:+d} ms[/bold] (rtt {result.rtt_ms:.0f} ms)")
    else:
        console.print(f"[red]Sync failed:[/red] {result.reason}")
        sys.exit(1)


@main.command()
def status() -> None:
    """Show configuration."""
    console.print("[bold]twofa status[/bold]")
    console.print(f"  Time authority: {settings.time_authority_url}")
    console.print(f"  Period: {settings.period_s}s, {settings.digits} digits")
    console.print(f"  Auto refresh limit: {settings.max_auto_refresh}")
    console.print(f"  Slots: {', '.join(_slots())}")
    console.print(f"  Store: {settings.store_path}")


@main.command()
@click.argument("secrets", nargs=-1)
def watch(secrets: tuple[str, ...]) -> None:
    """Live countdown for one secret per slot. Press Enter for fresh codes."""
    slots = _slots()
    if len(secrets) > len(slots):
        raise click.BadParameter(f"At most {len(slots)} secrets (slots: {', '.join(slots)})")

    sink = ConsoleSink(console)
    auth = Authenticator(
        sink,
        ClockSynchronizer(settings.time_authority_url),
        JsonFileStore(settings.store_path),
        slots=slots,
        max_refresh=settings.max_auto_refresh,
        period=settings.period_s,
        digits=settings.digits,
    )
    for slot, raw in zip(slots, secrets):
        auth.set_input(slot, raw)

    try:
        asyncio.run(_watch(auth, sink))
    except KeyboardInterrupt:
        pass


def _read_stdin(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[str | None]) -> None:
    for line in sys.stdin:
        loop.call_soon_threadsafe(queue.put_nowait, line)
    loop.call_soon_threadsafe(queue.put_nowait, None)


async def _watch(auth: Authenticator, sink: ConsoleSink) -> None:
    loop = asyncio.get_running_loop()
    lines: asyncio.Queue[str | None] = asyncio.Queue()
    threading.Thread(target=_read_stdin, args=(loop, lines), name="stdin", daemon=True).start()
    resync: asyncio.Task[None] | None = None
    with Live(sink.render(), console=console, refresh_per_second=4) as live:
        sink.attach(live)
        auth.start()
        if settings.resync_interval_s > 0:
            resync = loop.create_task(auth.clock.run_periodic(settings.resync_interval_s))
        try:
            while True:
                for slot in auth.slots:
                    if auth.inputs[slot]:
                        auth.generate(slot)
                if await lines.get() is None:
                    # stdin closed, keep counting until interrupted
                    await asyncio.Event().wait()
        finally:
            auth.stop()
            if resync is not None:
                resync.cancel()


if __name__ == "__main__":
    main()
