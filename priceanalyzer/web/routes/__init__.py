"""priceanalyzer web route modules.

Each module exports a ``router`` (APIRouter instance) that the application
factory in priceanalyzer.web.app includes.
"""

from priceanalyzer.web.routes import health, prices

__all__ = ["health", "prices"]
