"""FastAPI HTTP surface for priceanalyzer."""
