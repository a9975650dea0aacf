"""Fatal error types raised by the choropleth pipeline."""


class CornmapError(Exception):
    """Base class for errors that abort a pipeline run."""


class SourceUnavailable(CornmapError):
    """An input (statistics CSV or boundary file) could not be fetched or opened."""


class SchemaMismatch(CornmapError):
    """A required column is absent from the statistics source."""


class UnknownRegion(CornmapError):
    """The boundary source has no polygons for the requested region."""


class ConfigError(CornmapError, ValueError):
    """A required config key (region, input file, output file, column) is unset."""
