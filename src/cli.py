"""Command line entry point: serve the app, install the schema, run hooks."""

import typer
import uvicorn
from rich.console import Console
from sqlmodel import Session

from .application.product_cleanup_service import ProductCleanupService
from .config import settings
from .infrastructure.database.database import get_main_engine
from .infrastructure.database.installer import SCHEMA_VERSION, install
from .logging_config import setup_logging

console = Console()

app = typer.Typer(
    name="lease-rentals",
    help="""Lease Rentals service

    Examples:
      lease-rentals serve                  - run the HTTP server
      lease-rentals serve --reload         - run with auto reload
      lease-rentals install                - create or upgrade the schema
      lease-rentals cleanup-product 42     - remove rental data of product 42
    """,
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def main():
    """Main entry point for the CLI."""
    app()


@app.command()
def serve(
    host: str = typer.Option(settings.host, help="Interface to bind"),
    port: int = typer.Option(settings.port, help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the API and admin screens with uvicorn."""
    uvicorn.run("src.main:app", host=host, port=port, reload=reload)


@app.command("install")
def install_schema():
    """Create or upgrade the database schema."""
    setup_logging()
    if install(get_main_engine()):
        console.print(f"✅ Schema installed (version {SCHEMA_VERSION})", style="green")
    else:
        console.print(f"Schema already at version {SCHEMA_VERSION}", style="dim")


@app.command("cleanup-product")
def cleanup_product(
    product_id: int = typer.Argument(..., help="Id of the deleted product"),
):
    """Delete lease requests, their history and leases of a removed product."""
    setup_logging()
    with Session(get_main_engine()) as session:
        report = ProductCleanupService(session).handle_product_deletion(
            product_id, source="cli"
        )

    if not report.succeeded:
        console.print(f"❌ Cleanup of product {product_id} failed", style="red")
        raise typer.Exit(code=1)

    console.print(
        f"✅ Removed {report.requests_deleted} request(s) and "
        f"{report.leases_deleted} lease(s) of product {product_id}",
        style="green",
    )


if __name__ == "__main__":
    main()
