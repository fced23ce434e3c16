from __future__ import annotations


class SchemaError(RuntimeError):
    """Raised when a trusted input file does not have the expected shape."""

    def __init__(self, path: object, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message
