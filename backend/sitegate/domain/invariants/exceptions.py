class InvariantViolation(Exception):
    """Raised when persisted workflow data would break a domain rule."""
