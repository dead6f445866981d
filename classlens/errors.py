"""Error hierarchy for ClassLens.

Ingestion errors are fatal to one upload attempt only: the session keeps
its previous dataset and the user can retry with another archive. Query
errors come from ad hoc filter/sort input typed at the CLI.
"""


class ClassLensError(Exception):
    """Base exception for all ClassLens errors."""

    pass


class IngestionError(ClassLensError):
    """An archive could not be turned into a dataset."""

    pass


class ArchiveError(IngestionError):
    """The uploaded file is not a readable ZIP archive."""

    pass


class DataFileNotFoundError(IngestionError):
    """The archive holds no CSV member at all."""

    pass


class CsvParseError(IngestionError):
    """The selected CSV member could not be parsed."""

    pass


class EmptyDataError(IngestionError):
    """The CSV parsed but contains no data rows."""

    pass


class ExportError(ClassLensError):
    """Writing an export file failed. In-memory state is unaffected."""

    pass


class StorageError(ClassLensError):
    """The key-value store could not persist a value."""

    pass


class QueryError(ClassLensError):
    """Invalid ad hoc filter or sort input."""

    pass


class QueryParseError(QueryError):
    """A `where` expression could not be tokenized or parsed."""

    pass


class UnknownFieldError(QueryError):
    """A field name does not map to any SlotField."""

    pass
