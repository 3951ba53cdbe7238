# server/http_app.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import Settings
from app.errors import ErrorKind
from server.registry import ToolSpec, dispatch_tool_call, list_tools_payload

PROTOCOL_VERSION = "2025-03-26"  # MCP protocol revision


def _jsonrpc_error(id_: Any, code: int, message: str, data: Any | None = None) -> JSONResponse:
    body: Dict[str, Any] = {"jsonrpc": "2.0", "id": id_, "error": {"code": code, "message": message}}
    if data is not None:
        body["error"]["data"] = data
    return JSONResponse(body)

def _jsonrpc_result(id_: Any, result: Any) -> JSONResponse:
    return JSONResponse({"jsonrpc": "2.0", "id": id_, "result": result})


def create_http_app(registry: Dict[str, ToolSpec], settings: Settings) -> FastAPI:
    app = FastAPI(title="MCP Filesystem HTTP Server", version=settings.SERVER_VERSION)
    allowed_origins = settings.allowed_origins()

    # ---------- Security: Origin validation ----------

    def _origin_allowed(req: Request) -> bool:
        origin = req.headers.get("origin")
        if not origin:
            return settings.MCP_HTTP_ALLOW_NO_ORIGIN
        return origin.lower() in allowed_origins

    @app.middleware("http")
    async def origin_validation_mw(request: Request, call_next):
        # MCP requires Origin validation on HTTP to prevent DNS rebinding
        if not _origin_allowed(request):
            return JSONResponse({"error": {"code": 403, "message": "Forbidden origin"}}, status_code=403)
        return await call_next(request)

    # ---------- MCP JSON-RPC endpoint (Streamable HTTP) ----------

    @app.post(settings.MCP_HTTP_PATH)
    async def mcp_endpoint(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            return _jsonrpc_error(None, -32700, "Parse error")
        if not isinstance(payload, dict):
            return _jsonrpc_error(None, -32600, "Invalid Request")

        id_ = payload.get("id")
        method = payload.get("method")
        params = payload.get("params") or {}

        if method == "initialize":
            return _jsonrpc_result(id_, {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": {"name": settings.SERVER_NAME, "version": settings.SERVER_VERSION},
            })

        if method == "tools/list":
            return _jsonrpc_result(id_, list_tools_payload(registry))

        if method == "tools/call":
            result = await dispatch_tool_call(
                registry, params.get("name"), params.get("arguments") or {},
                settings.LOG_ARG_PREVIEW_CHARS,
            )
            if result.kind == ErrorKind.UNKNOWN_TOOL:
                return _jsonrpc_error(id_, -32601, result.text)
            if result.kind == ErrorKind.INVALID_ARGUMENTS:
                return _jsonrpc_error(id_, -32602, result.text)
            return _jsonrpc_result(id_, result.to_content())

        return _jsonrpc_error(id_, -32601, f"Method not found: {method}")

    return app
