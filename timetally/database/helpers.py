class DatabaseError(Exception):
    """Custom exception for storage operations."""
    pass
