"""Root conftest - shared test configuration."""

import os

# Ensure tests never reach a real vector store or pick up real credentials
os.environ.setdefault("QDRANT_URL", "http://qdrant.test:6333")
os.environ.setdefault("QDRANT_API_KEY", "")
os.environ.setdefault("LOG_FORMAT", "text")
