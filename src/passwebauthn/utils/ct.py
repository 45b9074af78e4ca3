import hmac


def ct_eq(a: bytes, b: bytes) -> bool:
    """Constant-time equality for two fixed-size identifiers.

    The all-zero identifier is the extraction default and never compares equal,
    so a failed extraction cannot match an unset expectation.
    """
    if len(a) != len(b) or not any(a):
        return False
    return hmac.compare_digest(a, b)
