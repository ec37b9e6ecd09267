"""HTTP API - FastAPI application exposing the tool catalogue over REST."""

import json
import logging
import os
from typing import Any, Dict, Optional

from fastapi import FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from .server.tools import TOOLS

logger = logging.getLogger(__name__)

# Tool dispatcher (injected by the caller)
_dispatcher = None


def configure_api_dependencies(dispatcher) -> None:
    """Configure API with the tool dispatcher."""
    global _dispatcher
    _dispatcher = dispatcher


class ToolCall(BaseModel):
    arguments: Dict[str, Any] = {}


web_api = FastAPI(title="NASDAQ-100 Stock API", version=__version__)
web_api.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET", "POST"], allow_headers=["*"])


def _require_api_auth(x_api_key: Optional[str]) -> None:
    """Enforce API key auth when WEB_API_TOKEN is configured."""
    token = os.getenv("WEB_API_TOKEN", "").strip()
    if not token:
        return
    if not x_api_key or x_api_key != token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


def _get_dispatcher():
    if _dispatcher is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tool dispatcher not configured",
        )
    return _dispatcher


async def _call(name: str, arguments: Dict[str, Any]):
    result = await _get_dispatcher().dispatch(name, arguments)
    if result.is_error:
        return JSONResponse(status_code=500, content={"error": result.text})
    return json.loads(result.text)


@web_api.get("/healthz")
async def healthz():
    """Unauthenticated health check endpoint for external pingers."""
    return {"status": "ok", "version": __version__}


@web_api.get("/api/tools")
async def api_tools(x_api_key: Optional[str] = Header(default=None, alias="X-API-Key")):
    _require_api_auth(x_api_key)
    return [tool.to_dict() for tool in TOOLS]


@web_api.get("/api/stock/{symbol}")
async def api_stock(symbol: str, x_api_key: Optional[str] = Header(default=None, alias="X-API-Key")):
    """Current quote; upstream failures come back as HTTP 500 with an error message."""
    _require_api_auth(x_api_key)
    return await _call("get_stock_price", {"symbol": symbol})


@web_api.post("/api/tools/{name}")
async def api_call_tool(
    name: str,
    call: ToolCall,
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
):
    _require_api_auth(x_api_key)
    if name not in {tool.name for tool in TOOLS}:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown tool: {name}")
    return await _call(name, call.arguments)


def run(host: str = "0.0.0.0", port: int = 3000) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn
    from dotenv import load_dotenv

    from .config import Config
    from .main import build_tool_dispatcher, configure_logging

    load_dotenv()
    config = Config.from_env()
    configure_logging(config.log_level)
    configure_api_dependencies(build_tool_dispatcher(config))

    port = int(os.getenv("PORT", str(port)))
    logger.info("Web server listening at http://%s:%d", host, port)
    uvicorn.run(web_api, host=host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    run()
