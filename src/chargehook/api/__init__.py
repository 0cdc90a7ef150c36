"""HTTP API for chargehook.

Example:
    ```python
    # Run with: uvicorn chargehook.api:app --reload
    from chargehook.api import create_app

    app = create_app()
    ```
"""

from .app import app, create_app
from .router import router

__all__ = ["app", "create_app", "router"]
