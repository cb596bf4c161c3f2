import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from book_lending.book import AvailabilityStatus, Book
from book_lending.config import configure_logging, settings
from book_lending.library import Library, LibraryError
from book_lending.store import BookStore, StoreError

logger = logging.getLogger(__name__)


# --- Models ---
class BorrowRecordModel(BaseModel):
    borrowedBy: str
    borrowedDate: str
    returnDate: Optional[str] = None
    dueDate: Optional[str] = None


class BookModel(BaseModel):
    id: str
    title: str
    author: str
    genre: str
    publicationDate: str
    edition: Optional[str] = None
    summary: str = ""
    availabilityStatus: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    borrowingHistory: List[BorrowRecordModel] = []
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class BookResponse(MessageResponse):
    data: BookModel


class BookListResponse(MessageResponse):
    totalNumberOfBooks: int
    data: List[BookModel]


def _book_model(book: Book) -> BookModel:
    return BookModel(**book.to_dict())


# --- Dependencies ---
def get_library(request: Request) -> Library:
    return request.app.state.library


Payload = Optional[Dict[str, Any]]


# --- API Endpoints ---
router = APIRouter(prefix="/api/v1", tags=["books"])


@router.post("/addbook", response_model=BookResponse, status_code=201)
def add_book(payload: Payload = Body(None), library: Library = Depends(get_library)):
    """Add a new book to the catalogue."""
    book = library.add_book(payload or {})
    return BookResponse(message="New book added successfully.", data=_book_model(book))


@router.get("/books", response_model=BookListResponse)
def get_all_books(library: Library = Depends(get_library)):
    """List every book."""
    books = library.list_books()
    return BookListResponse(
        totalNumberOfBooks=len(books),
        message="All books retrieved successfully.",
        data=[_book_model(b) for b in books],
    )


@router.get("/book/{book_id}", response_model=BookResponse)
def get_book(book_id: str, library: Library = Depends(get_library)):
    book = library.get_book(book_id)
    return BookResponse(message="Book retrieved successfully.", data=_book_model(book))


@router.put("/updatebook/{book_id}", response_model=BookResponse)
def update_book(book_id: str, payload: Payload = Body(None), library: Library = Depends(get_library)):
    """Partially update a book. Empty values leave the stored field unchanged."""
    book = library.update_book(book_id, payload or {})
    return BookResponse(message="Book updated successfully", data=_book_model(book))


@router.delete("/deletebook/{book_id}", response_model=MessageResponse)
def delete_book(book_id: str, library: Library = Depends(get_library)):
    book = library.delete_book(book_id)
    return MessageResponse(message=f"Book titled '{book.title}' has been deleted successfully.")


@router.post("/books/{book_id}/borrow", response_model=BookResponse)
def borrow_book(book_id: str, payload: Payload = Body(None), library: Library = Depends(get_library)):
    """Borrow a book. Body may carry ``borrowedBy`` and an expected ``returnDate``."""
    book = library.borrow_book(book_id, payload or {})
    return BookResponse(
        message=f"Book '{book.title}' has been borrowed successfully.",
        data=_book_model(book),
    )


@router.post("/books/{book_id}/return", response_model=BookResponse)
def return_book(book_id: str, library: Library = Depends(get_library)):
    book = library.return_book(book_id)
    return BookResponse(
        message=f"Book '{book.title}' has been returned successfully.",
        data=_book_model(book),
    )


# --- Error handlers ---
async def library_error_handler(request: Request, exc: LibraryError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed JSON or a body that is not an object.
    errors = exc.errors()
    detail = errors[0].get("msg") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"message": f"Invalid request body: {detail}"})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": f"Internal server error, {exc}"})


def create_app(library: Optional[Library] = None) -> FastAPI:
    """Build the application. Without a library, one is opened on startup from settings."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        if getattr(app.state, "library", None) is None:
            app.state.library = Library(BookStore(settings.database_file))
            logger.info(f"Serving books from {settings.database_file}")
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.library = library
    app.include_router(router)
    app.add_exception_handler(LibraryError, library_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # --- Health check ---
    @app.get("/1", response_class=PlainTextResponse)
    def liveness():
        return "Server is alive!"

    @app.get("/health")
    def health(request: Request):
        """Liveness plus a quick database probe."""
        lib: Library = request.app.state.library
        db_ok = lib.store.ping()
        total = None
        if db_ok:
            try:
                total = lib.store.count()
            except StoreError:
                db_ok = False
        return {
            "status": "healthy" if db_ok else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "db": db_ok,
            "total_books": total,
        }

    return app


app = create_app()
