"""Error taxonomy for the drift pipeline.

Each error names the pipeline stage that failed so the CLI can report it:

- ``ExtractionError``: a snapshot source could not be loaded or parsed.
  Fatal, raised before comparison begins.
- ``ComparisonError``: a snapshot is structurally malformed (e.g. a table
  without its column list).  Fatal for the run -- a partial diff would be
  misleading.
- ``GenerationError``: a migration artifact could not be built or written.
  Scoped to that artifact only.

Unmapped column types and unparsed defaults are *not* errors; they degrade
to annotated placeholders in the generated migration.
"""


class SchemaDriftError(Exception):
    """Base class for all pipeline errors."""

    stage: str = "pipeline"


class ExtractionError(SchemaDriftError):
    """Raised when a snapshot source cannot be loaded or extracted."""

    stage = "extraction"


class ProfileNotFoundError(ExtractionError):
    """Raised when a source identifier names an unknown profile."""


class ComparisonError(SchemaDriftError):
    """Raised when a snapshot is structurally malformed."""

    stage = "comparison"


class GenerationError(SchemaDriftError):
    """Raised when a migration artifact cannot be built or written."""

    stage = "generation"
