"""Custom exceptions for the medexam parser.

The extraction engine itself never raises for "no data" outcomes; it returns
an ``ExtractionResult`` instead. These exceptions cover the surrounding
layers (configuration loading and batch processing).
"""


class ConfigurationError(Exception):
    """Raised when marker tables or environment configuration are invalid."""

    pass


class PipelineError(Exception):
    """Raised when the batch pipeline fails at runtime."""

    pass
