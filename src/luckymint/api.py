"""
luckymint/api.py

REST API server for luckymint.

Provides HTTP endpoints for initializing rounds, requesting mints and
reading round, participant and history state.
"""

import json
import logging
import time
import trio
from typing import Any, Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlparse

from . import __version__
from .config import DEFAULT_API_HOST, DEFAULT_API_PORT
from .errors import (
    ArithmeticFault,
    AssetLedgerError,
    CooldownNotFinished,
    ExceedRoundMax,
    InsufficientMintFee,
    MintError,
    RoundAlreadyExists,
    RoundNotInitialized,
)
from .metrics import MetricsCollector
from .protocol.engine import RewardEngine
from .protocol.gateway import MintGateway

logger = logging.getLogger("luckymint.api")


# HTTP status for each rejection type
ERROR_STATUS = {
    RoundNotInitialized: 404,
    RoundAlreadyExists: 409,
    InsufficientMintFee: 402,
    ExceedRoundMax: 422,
    CooldownNotFinished: 429,
}

STATUS_TEXT = {
    200: "OK",
    201: "Created",
    400: "Bad Request",
    402: "Payment Required",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
}

MAX_BODY_SIZE = 64 * 1024


class BadRequest(ValueError):
    """The request body or parameters could not be used."""


@dataclass
class Request:
    """HTTP request representation."""
    method: str
    path: str
    query: Dict[str, List[str]]
    headers: Dict[str, str]
    body: bytes
    path_params: Dict[str, str] = field(default_factory=dict)

    def json_body(self) -> Dict[str, Any]:
        """Parse the body as a JSON object."""
        if not self.body:
            raise BadRequest("Request body required")
        try:
            data = json.loads(self.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise BadRequest("Invalid JSON")
        if not isinstance(data, dict):
            raise BadRequest("Request body must be a JSON object")
        return data


@dataclass
class Response:
    """HTTP response representation."""
    status: int
    headers: Dict[str, str]
    body: bytes

    @classmethod
    def json(cls, data: Any, status: int = 200) -> "Response":
        """Create JSON response."""
        body = json.dumps(data, indent=2).encode("utf-8")
        return cls(
            status=status,
            headers={"Content-Type": "application/json"},
            body=body,
        )

    @classmethod
    def text(cls, text: str, status: int = 200, content_type: str = "text/plain") -> "Response":
        """Create text response."""
        return cls(
            status=status,
            headers={"Content-Type": content_type},
            body=text.encode("utf-8"),
        )

    @classmethod
    def error(cls, message: str, status: int = 400, code: Optional[str] = None) -> "Response":
        """Create error response."""
        data = {"error": message}
        if code:
            data["code"] = code
        return cls.json(data, status=status)


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise BadRequest(f"{key} is required")
    return value


def _require_int(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise BadRequest(f"{key} must be a non-negative integer")
    return value


def _error_response(error: Exception) -> Response:
    """Map an engine exception to an HTTP response."""
    if isinstance(error, BadRequest):
        return Response.error(str(error), status=400)
    if isinstance(error, MintError):
        status = ERROR_STATUS.get(type(error), 400)
        response = Response.error(str(error), status=status, code=error.code)
        if isinstance(error, CooldownNotFinished):
            response.headers["Retry-After"] = str(error.retry_after)
        return response
    if isinstance(error, (ArithmeticFault, AssetLedgerError)):
        logger.error(f"Mint failed with {type(error).__name__}: {error}")
        return Response.error(str(error), status=500, code=error.code)
    return Response.error(str(error), status=500)


class MintAPI:
    """
    REST API server for luckymint.

    Usage:
        engine = RewardEngine.create(metrics=metrics)
        api = MintAPI(engine, host="0.0.0.0", port=8480, metrics=metrics)
        await api.start()

        # API available at http://localhost:8480
    """

    def __init__(
        self,
        engine: RewardEngine,
        gateway: MintGateway = None,
        host: str = DEFAULT_API_HOST,
        port: int = DEFAULT_API_PORT,
        metrics: MetricsCollector = None,
    ):
        """
        Initialize REST API server.

        Args:
            engine: Engine to expose via API
            gateway: Fee-checking gateway (built from engine if omitted)
            host: Host to bind to (default: localhost)
            port: Port to listen on
            metrics: Collector for the /metrics endpoint (engine's if omitted)
        """
        self.engine = engine
        self.gateway = gateway or MintGateway(engine)
        self.host = host
        self.port = port
        self.metrics = metrics or engine.metrics

        # Server state
        self._running = False
        self._start_time = time.time()

        # Route handlers
        self._routes: Dict[Tuple[str, str], Callable] = {
            ("GET", "/"): self._handle_root,
            ("GET", "/health"): self._handle_health,
            ("POST", "/rounds"): self._handle_init_round,
            ("GET", "/rounds/{round_id}"): self._handle_get_round,
            ("POST", "/rounds/{round_id}/mint"): self._handle_mint,
            ("GET", "/participants/{participant_id}"): self._handle_get_participant,
            ("GET", "/mints"): self._handle_get_mints,
            ("GET", "/metrics"): self._handle_metrics,
        }

    async def start(self) -> None:
        """Start the API server."""
        if self._running:
            logger.warning("API server already running")
            return

        self._running = True
        logger.info(f"Starting REST API server on {self.host}:{self.port}")

        try:
            await trio.serve_tcp(
                self._handle_connection,
                self.port,
                host=self.host,
            )
        except Exception as e:
            logger.error(f"API server error: {e}")
            self._running = False
            raise

    async def stop(self) -> None:
        """Stop the API server."""
        self._running = False
        logger.info("REST API server stopped")

    async def _handle_connection(self, stream: trio.SocketStream) -> None:
        """Handle incoming TCP connection."""
        try:
            try:
                request = await self._read_request(stream)
            except BadRequest as e:
                logger.warning(f"Malformed request: {e}")
                await self._send_response(stream, Response.error(str(e), status=400))
                return
            if not request:
                return

            response = await self.handle(request)
            await self._send_response(stream, response)

        except Exception as e:
            logger.error(f"Connection error: {e}")
            try:
                await self._send_response(stream, Response.error(str(e), status=500))
            except trio.BrokenResourceError:
                logger.debug("Client went away before the error response was sent")
        finally:
            await stream.aclose()

    async def _read_request(self, stream: trio.SocketStream) -> Optional[Request]:
        """Read and parse HTTP request."""
        try:
            data = b""
            while b"\r\n\r\n" not in data:
                chunk = await stream.receive_some(4096)
                if not chunk:
                    return None
                data += chunk
                if len(data) > MAX_BODY_SIZE:
                    logger.warning("Request headers too large, dropping connection")
                    return None

            header_end = data.index(b"\r\n\r\n")
            header_data = data[:header_end].decode("utf-8")
            body = data[header_end + 4:]

            lines = header_data.split("\r\n")
            request_line = lines[0].split(" ")
            method = request_line[0]
            path_with_query = request_line[1] if len(request_line) > 1 else "/"

            parsed = urlparse(path_with_query)
            path = parsed.path
            query = parse_qs(parsed.query)

            headers = {}
            for line in lines[1:]:
                if ":" in line:
                    key, value = line.split(":", 1)
                    headers[key.strip().lower()] = value.strip()

            try:
                content_length = int(headers.get("content-length", 0))
            except ValueError:
                raise BadRequest("Content-Length must be an integer")
            if content_length < 0:
                raise BadRequest("Content-Length must not be negative")
            content_length = min(content_length, MAX_BODY_SIZE)
            while len(body) < content_length:
                chunk = await stream.receive_some(4096)
                if not chunk:
                    break
                body += chunk

            return Request(
                method=method,
                path=path,
                query=query,
                headers=headers,
                body=body[:content_length] if content_length else body,
            )

        except BadRequest:
            raise
        except (UnicodeDecodeError, ValueError, trio.BrokenResourceError) as e:
            logger.error(f"Error reading request: {e}")
            return None

    async def _send_response(self, stream: trio.SocketStream, response: Response) -> None:
        """Send HTTP response."""
        status_text = STATUS_TEXT.get(response.status, "Unknown")

        lines = [f"HTTP/1.1 {response.status} {status_text}"]

        response.headers["Content-Length"] = str(len(response.body))
        response.headers["Connection"] = "close"
        response.headers["Server"] = f"luckymint/{__version__}"

        for key, value in response.headers.items():
            lines.append(f"{key}: {value}")

        lines.append("")
        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"

        await stream.send_all(header_bytes + response.body)

    async def handle(self, request: Request) -> Response:
        """Route a request and turn engine errors into error responses."""
        try:
            return await self._route_request(request)
        except (BadRequest, MintError, ArithmeticFault, AssetLedgerError) as e:
            return _error_response(e)

    async def _route_request(self, request: Request) -> Response:
        """Route request to appropriate handler."""
        handler = self._routes.get((request.method, request.path))
        if handler:
            return await handler(request)

        for (method, pattern), handler in self._routes.items():
            if method != request.method:
                continue

            match, params = self._match_path(pattern, request.path)
            if match:
                request.path_params = params
                return await handler(request)

        return Response.error("Not Found", status=404)

    def _match_path(self, pattern: str, path: str) -> Tuple[bool, Dict[str, str]]:
        """Match path against pattern with parameters."""
        pattern_parts = pattern.split("/")
        path_parts = path.split("/")

        if len(pattern_parts) != len(path_parts):
            return False, {}

        params = {}
        for p_part, path_part in zip(pattern_parts, path_parts):
            if p_part.startswith("{") and p_part.endswith("}"):
                if not path_part:
                    return False, {}
                params[p_part[1:-1]] = path_part
            elif p_part != path_part:
                return False, {}

        return True, params

    # ========== Route Handlers ==========

    async def _handle_root(self, request: Request) -> Response:
        """Handle root endpoint."""
        return Response.json({
            "name": "luckymint",
            "version": __version__,
            "endpoints": list(f"{m} {p}" for (m, p) in self._routes.keys()),
        })

    async def _handle_health(self, request: Request) -> Response:
        """Handle health check."""
        return Response.json({
            "status": "healthy",
            "mints": len(self.engine.emitter),
            "uptime_seconds": time.time() - self._start_time,
        })

    async def _handle_init_round(self, request: Request) -> Response:
        """Handle round initialization."""
        data = request.json_body()
        round_id = _require_str(data, "round_id")
        asset_kind = data.get("asset_kind")
        if asset_kind is not None and (not isinstance(asset_kind, str) or not asset_kind):
            raise BadRequest("asset_kind must be a non-empty string")

        round_state = await self.engine.initialize_round(round_id, asset_kind)
        return Response.json(round_state.to_dict(), status=201)

    async def _handle_get_round(self, request: Request) -> Response:
        """Handle get round endpoint."""
        round_id = request.path_params["round_id"]
        round_state = await self.engine.get_round(round_id)
        if round_state is None:
            raise RoundNotInitialized(round_id)
        return Response.json(round_state.to_dict())

    async def _handle_get_participant(self, request: Request) -> Response:
        """Handle get participant endpoint."""
        participant_id = request.path_params["participant_id"]
        (last_mint_time, total_mints, best_probability,
         current_combo, best_combo, badges) = await self.engine.get_participant_info(participant_id)
        return Response.json({
            "participant_id": participant_id,
            "last_mint_time": last_mint_time,
            "total_mints": total_mints,
            "best_probability": best_probability,
            "current_combo": current_combo,
            "best_combo": best_combo,
            "achievement_badges": list(badges),
        })

    async def _handle_mint(self, request: Request) -> Response:
        """Handle mint request."""
        round_id = request.path_params["round_id"]
        data = request.json_body()
        participant_id = _require_str(data, "participant_id")
        fee = _require_int(data, "fee")

        record = await self.gateway.request_mint(participant_id, round_id, fee)
        return Response.json(record.to_dict(), status=201)

    async def _handle_get_mints(self, request: Request) -> Response:
        """Handle mint history endpoint."""
        limit = None
        limit_param = request.query.get("limit", [])
        if limit_param:
            try:
                limit = int(limit_param[0])
            except ValueError:
                raise BadRequest("limit must be an integer")

        records = self.engine.history(limit)
        return Response.json({
            "count": len(records),
            "mints": [r.to_dict() for r in records],
        })

    async def _handle_metrics(self, request: Request) -> Response:
        """Handle Prometheus metrics endpoint."""
        if not self.metrics:
            return Response.error("Metrics not enabled", status=404)

        return Response.text(
            self.metrics.collect(),
            content_type="text/plain; version=0.0.4; charset=utf-8",
        )
