"""Main CLI application module."""

import typer

from .product_commands import products_app

app = typer.Typer(
    help="🛒 Product catalog CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(products_app, name="products")


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int | None = typer.Option(None, "--port", help="Port (default from config)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from src.catalog.runtime.context import get_config

    config = get_config().app
    uvicorn.run(
        "src.catalog.api.http.app:app",
        host=host or config.host,
        port=port or config.port,
        reload=reload,
        access_log=False,
    )


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
