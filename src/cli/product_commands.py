"""Product catalog CLI commands."""

from decimal import Decimal
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from src.catalog.core.exceptions import NotFound, RecordStoreError
from src.catalog.entities.service.product import Product, ProductRepository
from src.catalog.runtime.config.config_data import StoreConfig
from src.catalog.runtime.context import get_config

console = Console()

products_app = typer.Typer(help="Inspect and edit the product record file")

STORE_OPTION = typer.Option(
    None, "--store", "-s", help="Record file to use instead of the configured one"
)


def get_repository(store: Path | None) -> ProductRepository:
    """Build a repository for ``store`` or the configured record file."""
    config = get_config().store
    if store is not None:
        config = StoreConfig(
            path=str(store),
            require_existing=config.require_existing,
            lock_timeout_seconds=config.lock_timeout_seconds,
        )
    return ProductRepository.from_config(config)


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]❌ {escape(message)}[/red]")
    return typer.Exit(code=1)


@products_app.command("list")
def list_products(store: Path | None = STORE_OPTION) -> None:
    """List all products ordered by id."""
    repository = get_repository(store)
    try:
        products = repository.all()
    except RecordStoreError as e:
        raise _fail(f"Failed to read products: {e}") from e

    if not products:
        console.print(f"[yellow]No products in {repository.storage.location}[/yellow]")
        return

    table = Table(title=f"Products in {repository.storage.location}")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("SKU", style="green")
    table.add_column("Name", style="magenta")
    table.add_column("Price", justify="right")
    table.add_column("Tax", justify="right")
    table.add_column("Stock", style="yellow", justify="right")

    for product in products:
        table.add_row(
            str(product.id),
            product.sku or "",
            product.name or "",
            str(product.price),
            str(product.tax),
            str(product.stock if product.stock is not None else ""),
        )

    console.print(table)
    console.print(f"\n[green]Found {len(products)} products[/green]")


@products_app.command("show")
def show_product(
    product_id: int = typer.Argument(..., help="ID of the product"),
    store: Path | None = STORE_OPTION,
) -> None:
    """Show a single product."""
    repository = get_repository(store)
    try:
        product = repository.find(product_id)
    except NotFound as e:
        raise _fail(str(e)) from e
    except RecordStoreError as e:
        raise _fail(f"Failed to read products: {e}") from e

    table = Table(show_header=False)
    table.add_column("Attribute", style="cyan")
    table.add_column("Value")
    for name, value in product.attributes.items():
        table.add_row(name, "" if value is None else str(value))
    console.print(table)


@products_app.command("add")
def add_product(
    name: str = typer.Option(..., "--name", "-n", help="Display name"),
    sku: str = typer.Option(..., "--sku", help="SKU, e.g. ABCD-E123"),
    description: str = typer.Option(..., "--description", "-d", help="Description"),
    price: float = typer.Option(..., "--price", "-p", help="Unit price"),
    tax: float = typer.Option(..., "--tax", "-t", help="Tax per unit"),
    stock: int = typer.Option(..., "--stock", help="Units on hand"),
    currency: str = typer.Option("USD", "--currency", "-c", help="ISO currency code"),
    store: Path | None = STORE_OPTION,
) -> None:
    """Add a new product."""
    repository = get_repository(store)
    product = Product()
    try:
        result = repository.save(
            product,
            {
                "name": name,
                "sku": sku,
                "description": description,
                "price_amount": Decimal(str(price)),
                "price_currency": currency,
                "tax_amount": Decimal(str(tax)),
                "tax_currency": currency,
                "stock": stock,
            },
        )
    except RecordStoreError as e:
        raise _fail(f"Failed to save product: {e}") from e

    if not result:
        for field, messages in result.messages.items():
            for message in messages:
                console.print(f"[red]  {field} {message}[/red]")
        raise _fail("Product is invalid")

    console.print(f"[green]✅ Created product {product.id} ({product.name})[/green]")


@products_app.command("delete")
def delete_product(
    product_id: int = typer.Argument(..., help="ID of the product"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
    store: Path | None = STORE_OPTION,
) -> None:
    """Delete a product."""
    repository = get_repository(store)
    try:
        product = repository.find(product_id)
    except NotFound as e:
        raise _fail(str(e)) from e
    except RecordStoreError as e:
        raise _fail(f"Failed to read products: {e}") from e

    if not force and not Confirm.ask(f"Delete product {product.id} ({product.name})?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    try:
        product.destroy(repository)
    except RecordStoreError as e:
        raise _fail(f"Failed to delete product: {e}") from e
    console.print(f"[green]✅ Deleted product {product_id}[/green]")
