"""Service-layer exceptions."""


class SymbolError(Exception):
    """Raised when a symbol command cannot be applied."""

    code = "SYMBOL_ERROR"

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class InvalidNameError(SymbolError):
    """Raised when a symbol name does not match the allowed pattern."""

    code = "INVALID_NAME"

    def __init__(self, name: str) -> None:
        super().__init__(name, f"'{name}' is not a valid variable name.")


class DuplicateNameError(SymbolError):
    """Raised when a symbol with the same name already exists."""

    code = "DUPLICATE_NAME"

    def __init__(self, name: str) -> None:
        super().__init__(name, f"A symbol named '{name}' already exists.")


class NoAnalysisError(Exception):
    """Raised when a command needs a previous analysis result."""
