"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class SourceShapeError(PipelineError):
    """Raised when a whole source is not a sequence of row mappings."""

    error_code = "SOURCE_SHAPE_ERROR"


class StageError(PipelineError):
    """Raised for stage failures such as a source that cannot be fetched."""

    error_code = "STAGE_ERROR"
