"""Library Console - terminal management console for a library API

This package contains:
- API client and resource services (services/)
- Screen controllers for the catalog and loans (screens/)
- CLI and interactive menu (main.py)
"""

__version__ = "1.0.0"
