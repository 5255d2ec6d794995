from api.schemas.common import ErrorBody, ErrorResponse
from api.schemas.livelog import FeedPage, IngestRequest, IngestResponse
from api.schemas.memory import AppendFactsRequest, FactIn, VerifyResponse

__all__ = [
    "AppendFactsRequest",
    "ErrorBody",
    "ErrorResponse",
    "FactIn",
    "FeedPage",
    "IngestRequest",
    "IngestResponse",
    "VerifyResponse",
]
