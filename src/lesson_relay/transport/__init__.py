"""HTTP transport, response decoding and the error taxonomy."""

from .errors import ParseError, QuotaExceededError, RelayError, ResponseShapeError, UpstreamError
from .gemini_client import GeminiClient, build_request_body
from .responses import SingleResponse, StreamedFragment, extract_candidate_text, extract_text
from .stream_decoder import StreamDecoder, decode_stream

__all__ = [
    "GeminiClient",
    "ParseError",
    "QuotaExceededError",
    "RelayError",
    "ResponseShapeError",
    "SingleResponse",
    "StreamDecoder",
    "StreamedFragment",
    "UpstreamError",
    "build_request_body",
    "decode_stream",
    "extract_candidate_text",
    "extract_text",
]
