"""Book Lending - Core Application Package

This package contains the core application modules including:
- API endpoints (api.py)
- Lending operations (library.py)
- CLI interface (main.py)
- Data models (book.py)
- Database and store layer (database.py, store.py)
"""

__version__ = "1.0.0"
