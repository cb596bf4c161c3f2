from typing import Optional

import typer
import uvicorn

from book_lending import database
from book_lending.config import configure_logging, settings
from book_lending.library import Library, LibraryError
from book_lending.store import BookStore
from book_lending.ui_helpers import print_book_detail, print_list_result, set_output_mode

APP_NAME = "Book Lending CLI"

app = typer.Typer(help=APP_NAME)


def _library() -> Library:
    return Library(BookStore(database.DATABASE_FILE))


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global CLI options (e.g. output mode)."""
    if output:
        set_output_mode(output)


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Start the HTTP API with uvicorn."""
    configure_logging()
    host = host or settings.api_host
    port = int(port or settings.port)
    print(f"server is listening to PORT:{port}.")
    uvicorn.run(
        "book_lending.api:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command("init-db")
def cli_init_db():
    """Create the database schema."""
    database.initialize_database()
    print(f"Database initialized at {database.DATABASE_FILE}")


@app.command("list")
def cli_list():
    """List all books."""
    try:
        books = _library().list_books()
    except LibraryError as e:
        print(f"Error: {e.message}")
        raise typer.Exit(code=1)
    print_list_result(books)


@app.command("find")
def cli_find(book_id: str):
    """Show a single book by its id."""
    try:
        book = _library().get_book(book_id)
    except LibraryError as e:
        print(f"Error: {e.message}")
        raise typer.Exit(code=1)
    print_book_detail(book)


if __name__ == "__main__":
    app()
