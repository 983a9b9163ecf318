"""
FastAPI WebSocket Chat Relay
Room-based chat with presence, typing indicators and private messages
"""

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from contextlib import asynccontextmanager
from pathlib import Path
import json
import time
import uuid
import uvicorn

from chat_relay import (
    SessionEngine,
    HandlerError,
    ErrorKind,
    get_logger,
    log_security_event,
    log_websocket_event,
    log_system_event,
    ERROR_MESSAGES,
    HOST,
    PORT,
    LOG_LEVEL,
    CORS_ORIGINS,
    CORS_ALLOW_CREDENTIALS
)

# Global instances
engine = SessionEngine()
logger = get_logger()

TEMPLATES_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    logger.info("Chat relay starting up...")
    yield
    logger.info("Chat relay shutting down...")

app = FastAPI(
    title="Chat Relay",
    description="Real-time room-based chat relay",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ALLOW_CREDENTIALS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

@app.get("/")
async def root(request: Request):
    """Serve the chat page"""
    if not (TEMPLATES_DIR / "index.html").exists():
        return HTMLResponse(content="<h1>Chat interface not found</h1>", status_code=404)
    return templates.TemplateResponse(request, "index.html", {"ws_path": "/ws"})

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        stats = await engine.get_stats()
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "stats": stats
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")

@app.get("/stats")
async def get_stats():
    """Get relay statistics"""
    try:
        stats = await engine.get_stats()
        return {
            "server": "Chat Relay",
            "timestamp": time.time(),
            **stats
        }
    except Exception as e:
        logger.error(f"Stats endpoint failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to get stats")

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Relay WebSocket: one JSON event per frame, in both directions"""
    connection_id = f"ws_{uuid.uuid4().hex[:12]}"
    client_ip = websocket.client.host if websocket.client else "unknown"

    await websocket.accept()
    log_websocket_event("connection_accepted", connection_id, f"client_ip={client_ip}")
    log_system_event("websocket_connection", f"New connection from {client_ip}")

    try:
        await engine.connect(connection_id, websocket)

        while True:
            frame = await websocket.receive_text()

            try:
                payload = json.loads(frame)
            except json.JSONDecodeError as e:
                log_websocket_event("invalid_json", connection_id, f"JSON decode error: {e}")
                await engine.send_error(connection_id, HandlerError(ErrorKind.VALIDATION, ERROR_MESSAGES["invalid_json"]))
                continue

            log_websocket_event("frame_received", connection_id, f"type={payload.get('type') if isinstance(payload, dict) else None}")
            await engine.dispatch(connection_id, payload)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {connection_id}")

    except Exception as e:
        logger.error(f"WebSocket error on {connection_id}: {e}")
        log_security_event("websocket_error", {
            "connection_id": connection_id,
            "client_ip": client_ip,
            "error": str(e)
        })

    finally:
        await engine.disconnect(connection_id)
        log_websocket_event("cleanup_complete", connection_id)

if __name__ == "__main__":
    logger.info(f"Starting chat relay on port {PORT}...")

    uvicorn.run(
        "main:app",
        host=HOST,
        port=PORT,
        reload=False,
        log_level=LOG_LEVEL.lower(),
        access_log=True,
        ws_ping_interval=20,
        ws_ping_timeout=10,
    )
