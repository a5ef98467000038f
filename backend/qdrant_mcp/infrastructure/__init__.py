"""Infrastructure Layer - adapters for the embedding model, the vector store and logging.

Invariants:
    - Every collaborator failure leaves this layer as a QdrantMcpError subclass
"""
