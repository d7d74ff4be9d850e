"""Generation-time errors.

Every problem found while loading, scanning, compiling or rendering is
fatal for the whole run. The CLI turns these into a non-zero exit.
"""

from __future__ import annotations


class GenerationError(Exception):
    """Base class for all errors that abort a generation run."""


class SourceError(GenerationError):
    """The source file is missing, unreadable or not valid Python."""


class AnnotationError(GenerationError):
    """An ``apigen:api`` method annotation is malformed or misplaced."""


class TagError(GenerationError):
    """An ``apivalidator:`` field tag cannot be compiled."""


class RenderError(GenerationError):
    """A template is missing or failed to render."""


class ConfigError(GenerationError):
    """Generator options are invalid, e.g. an unusable module name."""


class OutputError(GenerationError):
    """The generated module cannot be written."""
