import json
import os
from typing import List

from rich.console import Console
from rich.table import Table

from book_lending.book import Book

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "BOOK_LENDING_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_list_result(books: List[Book]) -> None:
    """Print books according to the current output mode.
    - plain: 'ID - Title by Author [Status]' lines, or 'No books in library.'
    - json: JSON array of full book documents
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No books in library.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Genre", style="white")
        table.add_column("Status", style="green")
        for b in books:
            table.add_row(b.id or "", b.title, b.author, b.genre, b.availability_status.value)
        _console.print(table)
    else:
        for b in books:
            print(f"{b.id} - {b.title} by {b.author} [{b.availability_status.value}]")


def print_book_detail(book: Book) -> None:
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(book.to_dict(), ensure_ascii=False))
        return

    lines = [
        f"Title: {book.title}",
        f"Author: {book.author}",
        f"Genre: {book.genre}",
        f"Published: {book.publication_date}",
        f"Edition: {book.edition or '-'}",
        f"Status: {book.availability_status.value}",
        f"Loans: {len(book.borrowing_history)}",
    ]
    if mode == "rich":
        table = Table(show_header=False, box=None)
        for line in lines:
            key, _, value = line.partition(": ")
            table.add_row(f"[bold]{key}[/]", value)
        _console.print(table)
    else:
        print("Book Found")
        for line in lines:
            print(line)
