# =============================================================================
# Multimodal Vision Demo - Client Error Classification
# =============================================================================
# Maps a failed analysis call to one of the client-side error kinds.  A
# client-side timeout is always "timeout"; everything else is classified by
# case-sensitive substring on the exception message, in a fixed order:
# quota/rate, then network/fetch, else "server" carrying the underlying
# message.
# =============================================================================

from frontend.client import AnalysisTimeout
from frontend.state import ErrorKind, ErrorRecord

MSG_TIMEOUT = "Request timed out. The server took too long to respond."
MSG_QUOTA = "API quota or rate limit exceeded. Please try again later."
MSG_NETWORK = "Network error. Please check your internet connection and try again."
MSG_UNKNOWN = "An unknown error occurred"

MSG_NO_IMAGE = "Please upload an image first."
MSG_NOT_AN_IMAGE = "Please upload an image file."
MSG_FILE_TOO_LARGE = "File size exceeds {limit_mb} MB limit. Please upload a smaller image."
MSG_UNREADABLE_IMAGE = "Failed to read the image file. Please try another one."


def classify_failure(exc: BaseException) -> ErrorRecord:
    """
    Turn an exception raised by the analysis call into an ErrorRecord.

    Args:
        exc: The exception raised while calling the server.

    Returns:
        ErrorRecord with the client-side kind and a user-facing message.
    """
    if isinstance(exc, AnalysisTimeout):
        return ErrorRecord(ErrorKind.TIMEOUT, MSG_TIMEOUT)

    # Case-sensitive: "Rate limit exceeded" from the server is a server error.
    message = str(exc)
    if "quota" in message or "rate" in message:
        return ErrorRecord(ErrorKind.QUOTA, MSG_QUOTA)
    if "network" in message or "fetch" in message:
        return ErrorRecord(ErrorKind.NETWORK, MSG_NETWORK)
    return ErrorRecord(ErrorKind.SERVER, message or MSG_UNKNOWN)
