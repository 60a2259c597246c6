"""Error taxonomy for the climate pipeline.

Adapters and stores raise these; pass loops catch them per item, log with
context and move on to the next zone or coordinate.
"""


class PipelineError(Exception):
    """Base class for every error raised inside a pipeline pass."""

    kind = "pipeline"

    def __str__(self) -> str:
        return f"{self.kind} error: {super().__str__()}"


class NetworkError(PipelineError):
    """Transport failure or non-2xx response from a vendor API."""

    kind = "network"


class AuthError(PipelineError):
    """Vendor login did not yield a session token."""

    kind = "authentication"


class SerializationError(PipelineError):
    """Response body or stored config could not be decoded."""

    kind = "serialization"


class ValidationError(PipelineError):
    """Requested device or port does not exist on the vendor account."""

    kind = "validation"


class StorageError(PipelineError):
    """Record store read or write failed."""

    kind = "storage"
