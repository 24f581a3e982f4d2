# octink/errors.py
"""Exception taxonomy for the compositing, quantizing and panel layers."""


class OctinkError(Exception):
    """Base class for everything raised on purpose by octink."""


class DegenerateGeometry(OctinkError, ValueError):
    """Control points are collinear or coincident; no homography exists."""


class ProducerError(OctinkError):
    """The frame producer could not deliver frames for a source."""


class ProducerShortfall(ProducerError):
    """The frame producer returned fewer frames than were requested."""

    def __init__(self, source, requested: int, received: int):
        super().__init__(f"{source}: wanted {requested} frames, got {received}")
        self.source = source
        self.requested = requested
        self.received = received


class TransportError(OctinkError, IOError):
    """The panel transport rejected a clear/update/display/sleep."""


class SinkError(OctinkError, OSError):
    """Writing the generated image or the latest pointer failed."""


class ConfigError(OctinkError, ValueError):
    """Config or catalog file is missing fields or malformed."""
