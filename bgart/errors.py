class MockupError(Exception):
    """Base class for every error raised by the mockup services."""


class PlacementError(MockupError):
    """A required product placement could not be resolved."""


class ImageDecodeError(MockupError):
    """Image data (data URL or raw bytes) could not be decoded."""


class TemplateError(MockupError):
    """A template archive is missing its manifest or cannot be read."""


class WorkflowError(MockupError):
    """An operation was requested in a state that does not allow it."""


class GenerationError(MockupError):
    """The image generation API did not return an image."""
