"""Qdrant HTTP MCP Package - vector storage tools served over an SSE transport.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
