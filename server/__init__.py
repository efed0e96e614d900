# =============================================================================
# Multimodal Vision Demo - Server Package
# =============================================================================
# This package contains the server-side components: the proxy endpoint that
# validates uploads and forwards them to the hosted model, the model provider
# abstraction, and the error classifier that maps provider failures to
# user-facing responses.
# =============================================================================
