"""ClassLens configuration loaded from environment variables.

Every setting can be overridden with a `CLASSLENS_` prefixed variable or a
`.env` file in the working directory.
"""

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_ARCHIVE_MARKER = "momence-teachers-payroll-report-aggregate-combined"


class ClassLensConfig(BaseSettings):
    """Runtime settings for ingestion, persistence and logging."""

    # Paths
    data_dir: str = Field(
        default="data/state",
        description="Directory backing the key-value store (dataset + pivot configs)",
    )
    export_dir: str = Field(
        default=".",
        description="Default directory for CSV/JSON exports",
    )

    # Ingestion
    archive_marker: str = Field(
        default=DEFAULT_ARCHIVE_MARKER,
        description="Substring identifying the payroll CSV inside an uploaded ZIP",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "CLASSLENS_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


_config: ClassLensConfig | None = None


def get_config() -> ClassLensConfig:
    """Get the configuration singleton.

    Returns:
        ClassLensConfig: configuration instance
    """
    global _config
    if _config is None:
        _config = ClassLensConfig()
    return _config
