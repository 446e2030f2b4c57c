import hashlib


class Hasher:
    """
    Hasher provides static methods for generating SHA256 hashes from strings.

    Methods
    -------
    hash_string(input_string: str) -> str
        Returns a SHA256 hash of the input string.
    hash_to_int(input_string: str) -> int
        Returns a positive 63-bit integer derived from the SHA256 hash.
    """

    @staticmethod
    def hash_string(input_string: str) -> str:
        """Returns a SHA256 hash of the input string."""

        return hashlib.sha256(input_string.encode("utf-8")).hexdigest()

    @staticmethod
    def hash_to_int(input_string: str) -> int:
        """Returns a stable positive integer usable as a BIGINT key."""

        digest = Hasher.hash_string(input_string)
        return int(digest[:16], 16) & 0x7FFFFFFFFFFFFFFF
