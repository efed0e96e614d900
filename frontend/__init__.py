# =============================================================================
# Multimodal Vision Demo - Client Front End Package
# =============================================================================
# This package contains the client-side components: upload validation and
# preview, cache key derivation, the local result cache, the HTTP transport
# to the proxy server, and the controller that drives the UI state machine.
# =============================================================================
