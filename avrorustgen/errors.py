"""Exceptions raised while parsing schemas and generating code."""

from __future__ import annotations


class Error(Exception):
    """Base class of every error raised by the package."""

    label = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class SchemaError(Error):
    """A schema cannot be used as a source of generated types."""

    label = "Schema error"


class TemplateError(Error):
    """Code for a schema could not be rendered."""

    label = "Templating error"


class AvroError(Error):
    """An Avro schema document is malformed or cannot be resolved."""

    label = "Avro error"