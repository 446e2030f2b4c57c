from uuid import uuid4


def generate_id(prefix: str = "pv") -> str:
    """Generate a short session identifier such as ``pv-3f9c2a71d04b``.

    Session ids end up in checkpoint filenames, so they stay free of
    path separators and whitespace.
    """
    return f"{prefix}-{uuid4().hex[:12]}"
