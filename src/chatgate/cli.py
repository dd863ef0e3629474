from __future__ import annotations
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .bootstrap import build_context
from .config_loader import load_config
from .providers.catalog import available_models

app = typer.Typer(add_completion=False)
console = Console()

DEFAULT_CONFIG = Path("config/default.yaml")


def _configure_logging(config: Path) -> None:
    level = "INFO"
    try:
        level = str((load_config(config).get("logging") or {}).get("level", "INFO")).upper()
    except FileNotFoundError:
        pass
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def serve(
    config: Path = DEFAULT_CONFIG,
    host: str = "127.0.0.1",
    port: int = 8000,
):
    """Run the HTTP gateway."""
    from .web.app import run

    _configure_logging(config)
    run(config=config, host=host, port=port)


@app.command()
def models(config: Path = DEFAULT_CONFIG):
    """List the aliases that would be registered with the current credentials."""
    _configure_logging(config)
    ctx = build_context(config)

    table = Table(title="Available models")
    table.add_column("Alias")
    table.add_column("Name")
    table.add_column("Provider")
    table.add_column("Vendor model")
    for row in available_models(ctx.registry, ctx.catalog):
        table.add_row(row["id"], row["displayName"], row["providerName"], ctx.registry.config_for(row["id"]).model)
    console.print(table)

    missing = [kind for kind, ok in ctx.provider_status.items() if not ok and kind != "storage"]
    if missing:
        console.print(f"[yellow]No credential for: {', '.join(missing)}[/yellow]")
    default = ctx.gateway.default_model
    console.print(f"Default model: {default or '[red]none[/red]'}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
