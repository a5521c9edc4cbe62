from __future__ import annotations
import json
import time
from typing import List, Optional, Tuple
import typer
from .config import load_config, VideohubConfig
from .logging import setup_logging

app = typer.Typer(add_completion=False, help="Videohub Kit - control a Blackmagic Videohub over TCP")

# Shared connection options, resolved by _client()
HOST = typer.Option(None, "--host", help="Videohub IP/hostname")
PORT = typer.Option(9990, "--port", help="Videohub Ethernet Protocol port")
CONFIG = typer.Option(None, "--config", "-c", help="Path to config YAML (overrides --host/--port)")
LOG_LEVEL = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ...")

def _client(host: Optional[str], port: int, config: Optional[str], log_level: Optional[str]):
    from .devices.videohub import Videohub  # lazy import
    if config:
        cfg = load_config(config)
        setup_logging(log_level or cfg.log_level)
        hub = Videohub.from_config(cfg.videohub)
    elif host:
        setup_logging(log_level or "WARNING")
        hub = Videohub.from_config(VideohubConfig(host=host, port=port))
    else:
        raise typer.BadParameter("Give --host or --config")
    try:
        hub.connect()
    except ConnectionError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    return hub

def _parse_pair(text: str) -> Tuple[int, int]:
    dst, sep, src = text.partition(":")
    try:
        if not sep:
            raise ValueError
        return int(dst), int(src)
    except ValueError:
        raise typer.BadParameter(f"Expected DEST:SOURCE, got {text!r}")

def _done(ok: bool, what: str) -> None:
    if ok:
        typer.echo(what)
        return
    typer.echo("Command dropped (write failed); reconnected - retry if needed.", err=True)
    raise typer.Exit(code=1)

@app.command()
def status(
    host: Optional[str] = HOST, port: int = PORT, config: Optional[str] = CONFIG, log_level: Optional[str] = LOG_LEVEL,
    wait: float = typer.Option(5.0, "--wait", help="Seconds to wait for the initial state dump"),
):
    """Print identity, topology, labels and routing as JSON."""
    with _client(host, port, config, log_level) as hub:
        if not hub.wait_for_state(wait):
            typer.echo("Timed out waiting for routing state; showing what arrived.", err=True)
        typer.echo(json.dumps(hub.snapshot().as_dict(), indent=2))

@app.command()
def route(
    destination: int = typer.Argument(..., help="Output index (0-based)"),
    source: int = typer.Argument(..., help="Input index (0-based)"),
    host: Optional[str] = HOST, port: int = PORT, config: Optional[str] = CONFIG, log_level: Optional[str] = LOG_LEVEL,
):
    with _client(host, port, config, log_level) as hub:
        _done(hub.route(destination, source), f"Output {destination} <- input {source}")

@app.command("bulk-route")
def bulk_route(
    pairs: List[str] = typer.Argument(..., help="DEST:SOURCE pairs, applied in order"),
    host: Optional[str] = HOST, port: int = PORT, config: Optional[str] = CONFIG, log_level: Optional[str] = LOG_LEVEL,
):
    routes = [_parse_pair(p) for p in pairs]
    with _client(host, port, config, log_level) as hub:
        _done(hub.bulk_route(routes), f"Sent {len(routes)} route(s)")

@app.command("input-label")
def input_label(
    index: int = typer.Argument(..., help="Input index (0-based)"),
    text: str = typer.Argument(..., help="New label"),
    host: Optional[str] = HOST, port: int = PORT, config: Optional[str] = CONFIG, log_level: Optional[str] = LOG_LEVEL,
):
    with _client(host, port, config, log_level) as hub:
        _done(hub.input_label(index, text), f"Input {index} labelled {text!r}")

@app.command("output-label")
def output_label(
    index: int = typer.Argument(..., help="Output index (0-based)"),
    text: str = typer.Argument(..., help="New label"),
    host: Optional[str] = HOST, port: int = PORT, config: Optional[str] = CONFIG, log_level: Optional[str] = LOG_LEVEL,
):
    with _client(host, port, config, log_level) as hub:
        _done(hub.output_label(index, text), f"Output {index} labelled {text!r}")

@app.command()
def watch(
    host: Optional[str] = HOST, port: int = PORT, config: Optional[str] = CONFIG,
    log_level: Optional[str] = typer.Option("INFO", "--log-level"),
    seconds: float = typer.Option(-1.0, "--seconds", help="Stop after N seconds; -1 holds until Ctrl-C"),
):
    """Hold the connection open and log everything the hub sends."""
    with _client(host, port, config, log_level):
        typer.echo("Watching Videohub traffic (Ctrl-C to stop)…")
        deadline = time.monotonic() + seconds if seconds >= 0 else None
        try:
            while deadline is None or time.monotonic() < deadline:
                time.sleep(0.2)
        except KeyboardInterrupt:
            pass

if __name__ == "__main__":
    app()
