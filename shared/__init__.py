# =============================================================================
# Multimodal Vision Demo - Shared Package
# =============================================================================
# Definitions used on both sides of the HTTP boundary: the task catalogue and
# the pydantic wire schemas for the analyze endpoint.
# =============================================================================
