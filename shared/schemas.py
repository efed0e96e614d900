# =============================================================================
# Multimodal Vision Demo - Shared API Schemas
# =============================================================================
# Pydantic models defining the data contracts between the client front end
# and the proxy server.  These schemas are used for response validation and
# serialization across the HTTP API boundary, and for the JSON documents the
# client keeps in its local result cache.
#
# Wire field names follow the JSON envelope of POST /api/analyze, which uses
# camelCase (``processingTime``, ``errorType``).  The Python attributes are
# snake_case and map onto the wire names through aliases.
# =============================================================================

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AnalysisMetadata(BaseModel):
    """
    Details about how a result was produced.

    Attributes:
        model:           Identifier of the provider model that generated the text.
        processing_time: Milliseconds spent waiting for the provider call.
        task:            Task label the request was submitted with.
        timestamp:       Epoch milliseconds at which the response was built.
    """

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    model: str
    processing_time: int = Field(..., ge=0, alias="processingTime")
    task: str
    timestamp: Optional[int] = None


class AnalysisResult(BaseModel):
    """
    Success envelope returned by the analyze endpoint.

    This is also the document stored verbatim in the client result cache.

    Attributes:
        text:     The generated text.
        error:    Optional error message; empty on success.
        metadata: Optional AnalysisMetadata describing the generation.
    """

    model_config = ConfigDict(populate_by_name=True)

    text: str
    error: Optional[str] = None
    metadata: Optional[AnalysisMetadata] = None

    def to_wire(self) -> dict:
        """Serialize with the camelCase wire names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ErrorResponse(BaseModel):
    """
    Failure envelope returned by the analyze endpoint.

    Pre-provider validation failures carry no ``text`` field; classified
    provider failures carry an empty ``text``.

    Attributes:
        error:      User-facing error message.
        error_type: Machine-readable error kind (e.g. "file_too_large").
        text:       Empty string for classified provider failures.
    """

    model_config = ConfigDict(populate_by_name=True)

    error: str
    error_type: str = Field(..., alias="errorType")
    text: Optional[str] = None

    def to_wire(self) -> dict:
        """Serialize with the camelCase wire names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)
