"""Services Layer - session manager, MCP protocol handler, tool dispatch and tool handlers.

Invariants:
    - Tool handlers split by concern (store, search, collections)
    - Tool dispatch uses an explicit dict mapping (no auto-discovery)
"""
