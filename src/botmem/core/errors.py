"""
Error taxonomy.

Every failure names the store, backend or stage that produced it.
"""


class BotmemError(Exception):
    """Base exception for all botmem errors."""
    ...


class StoreError(BotmemError):
    """Storage engine failure, wrapped with the failing operation."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")


class NotFoundError(StoreError):
    """Raised when a label or id has no row."""
    ...


class ConflictError(StoreError):
    """Raised when a unique key already exists."""
    ...


class ConfigurationError(BotmemError):
    """Raised when provider selection or credentials are missing."""
    ...


class BackendError(BotmemError):
    """Raised when a language-model backend fails or returns a non-success response."""

    def __init__(
        self,
        backend: str,
        message: str,
        status: int | None = None,
        body: str | None = None,
    ):
        self.backend = backend
        self.status = status
        self.body = body
        detail = f"{backend}: {message}"
        if status is not None:
            detail += f" (status {status})"
        if body:
            detail += f": {body}"
        super().__init__(detail)


class SchemaError(BotmemError):
    """Raised when backend output does not match the extraction schema."""

    def __init__(self, message: str, raw: str):
        self.raw = raw
        super().__init__(f"decode extraction result: {message}\nraw: {raw}")


class ContextAssemblyError(BotmemError):
    """Raised when a store read fails while building the context payload."""

    def __init__(self, store: str, message: str):
        self.store = store
        super().__init__(f"load {store}: {message}")
