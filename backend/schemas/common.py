def reject_null(v):
    """Partial updates may omit a required column but never set it to null."""
    if v is None:
        raise ValueError("field cannot be null")
    return v
