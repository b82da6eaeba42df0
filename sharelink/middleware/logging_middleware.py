import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from sharelink.core.logging_utils import mask_headers, mask_path, sanitize_log_message

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _is_valid_request_id(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, TypeError):
        return False
    return True


class LoggingMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID to every request and logs requests and responses with masking."""

    # Paths without request/response log lines
    SKIP_EXACT = {"/", "/health"}
    SKIP_PREFIXES = ("/docs", "/redoc", "/openapi.json")

    def _skip(self, path: str) -> bool:
        return path in self.SKIP_EXACT or any(
            path.startswith(prefix) or path.endswith(prefix) for prefix in self.SKIP_PREFIXES
        )

    async def dispatch(self, request: Request, call_next):
        # Reuse a well-formed incoming request ID so traces span services
        incoming = request.headers.get(REQUEST_ID_HEADER)
        request_id = incoming if incoming and _is_valid_request_id(incoming) else str(uuid.uuid4())
        request.state.request_id = request_id

        if self._skip(request.url.path):
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        start_time = time.time()
        method = request.method
        # Link tokens travel in the path
        path = mask_path(request.url.path)
        client_ip = request.client.host if request.client else None

        logger.debug(
            sanitize_log_message(
                f"Request: {method} {path}",
                RequestID=request_id,
                IP=client_ip,
                UserAgent=request.headers.get("user-agent"),
                QueryParams=dict(request.query_params),
                Headers=mask_headers(dict(request.headers))
            )
        )

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.exception(
                sanitize_log_message(
                    f"Exception in request: {method} {path}",
                    RequestID=request_id,
                    ProcessTime=f"{process_time:.3f}s",
                    IP=client_ip,
                    Error=str(e)
                )
            )
            raise

        process_time = time.time() - start_time
        response.headers[REQUEST_ID_HEADER] = request_id

        logger.info(
            sanitize_log_message(
                f"Response: {method} {path}",
                RequestID=request_id,
                Status=response.status_code,
                ProcessTime=f"{process_time:.3f}s",
                IP=client_ip
            )
        )

        return response
