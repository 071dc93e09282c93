"""File parsers and writers."""
