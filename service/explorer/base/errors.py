class CityNotFoundError(ValueError):
    """Raised when a requested city doesn't exist."""


class NoDataError(ValueError):
    """Raised when a request is valid, but no data is available."""


class InvalidFilterStateError(ValueError):
    """Raised when a filter selection is inconsistent.

    Examples: a monthly averaging mode without a month name, or an
    hour window whose start lies after its end.
    """


class SchemaError(ValueError):
    """Raised when an input table does not have the expected shape."""

    def __init__(
        self,
        message: str,
        *,
        missing_columns: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.missing_columns = list(missing_columns or [])

    def __str__(self) -> str:
        base = super().__str__()
        if self.missing_columns:
            return f"{base} (missing_columns={self.missing_columns})"
        return base
