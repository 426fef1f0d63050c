"""Short code generation utilities."""

import secrets
import string
from typing import Optional


class ShortCodeGenerator:
    """Generate short codes for URLs."""

    # Base62 characters (alphanumeric, case-sensitive)
    BASE62_CHARS = string.ascii_uppercase + string.ascii_lowercase + string.digits

    def __init__(self, default_length: int = 8):
        """Initialize short code generator.

        Args:
            default_length: Default length for generated codes
        """
        if default_length <= 0:
            raise ValueError("Short code length must be positive")
        self.default_length = default_length

    def generate_random(self, length: Optional[int] = None) -> str:
        """Generate a random short code.

        Args:
            length: Length of the code (uses default if not specified)

        Returns:
            Random short code
        """
        length = length or self.default_length
        return "".join(secrets.choice(self.BASE62_CHARS) for _ in range(length))

    @staticmethod
    def is_valid_format(code: str) -> bool:
        """Check if code has valid format (alphanumeric, hyphen, underscore)."""
        return bool(code) and all(
            c in ShortCodeGenerator.BASE62_CHARS or c in "-_" for c in code
        )
