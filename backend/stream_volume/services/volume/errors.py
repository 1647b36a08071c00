class ValidationError(ValueError):
    """Raised for malformed input: bad settings payloads, empty user ids."""
