"""Unit tests for priceanalyzer web route modules.

Structure:
    tests/unit/web/
    ├── test_routes_prices.py        # Price upload/export and health routes
    └── test_dependencies.py         # app.state accessors

Testing pattern:
    - Build the app with create_app() and an in-memory keeper
    - Use FastAPI's TestClient as a context manager so the lifespan runs
    - Test request/response validation and error mapping
"""
