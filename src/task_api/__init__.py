"""
FastAPI task backend package.

The application instance lives in `task_api.main` (`task_api.main:app`); use
`task_api.main.create_app` to build one from explicit settings.
"""

__version__ = "0.1.0"
