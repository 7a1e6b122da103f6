from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from routers.stats import stats_router
from backend import RedisBackend
from dispatcher import EventDispatcher
from registry import Connection
import json
import asyncio
from typing import Optional
from constants import CORS_ORIGINS, CHECK_INVARIANTS, LOG_LEVEL, LOG_FILE, PRESENCE_ENABLED
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


async def pump_outbox(connection: Connection):
    """Background task delivering a connection's queued events to its WebSocket, in order."""
    connection_id = connection.connection_id
    try:
        while True:
            message = await connection.outbox.get()
            await connection.websocket.send_text(json.dumps(message))
            logger.debug(f"Sent '{message.get('type')}' to connection {connection_id}")
    except asyncio.CancelledError:
        logger.debug(f"Outbox writer cancelled for connection {connection_id}")
        raise
    except Exception as e:
        logger.warning(f"Error sending to connection {connection_id}: {e}")
        # Closing wakes the receive loop, which runs the cleanup
        try:
            await connection.websocket.close(code=1011)
        except Exception as close_error:
            logger.debug(f"Error closing WebSocket for connection {connection_id}: {close_error}")


def create_app(presence: Optional[RedisBackend] = None, check_invariants: bool = CHECK_INVARIANTS) -> FastAPI:
    app = FastAPI(title="Pairing Relay")

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(stats_router)

    # Single owner of the waiting pool and partnership table for this instance
    dispatcher = EventDispatcher(presence=presence, check_invariants=check_invariants)
    app.state.dispatcher = dispatcher

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Signaling socket: one JSON object with a `type` field per text frame."""
        client_host = websocket.client.host if websocket.client else None
        await websocket.accept()
        connection = dispatcher.connect(websocket, client_host=client_host)
        connection_id = connection.connection_id
        writer = asyncio.create_task(pump_outbox(connection))

        try:
            message_count = 0
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                message_count += 1
                data = message.get("text")
                if data is None:
                    logger.warning(f"Dropping binary frame #{message_count} from connection {connection_id}")
                    continue
                logger.debug(f"Received message #{message_count} from connection {connection_id}")
                dispatcher.handle_raw(connection_id, data)
        except WebSocketDisconnect:
            logger.debug(f"WebSocket disconnected normally for connection {connection_id}")
        except Exception as e:
            logger.error(f"Error receiving message from connection {connection_id}: {e}", exc_info=True)
        finally:
            dispatcher.disconnect(connection_id)
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")

    logger.info("FastAPI application initialized")
    return app


app = create_app(presence=RedisBackend() if PRESENCE_ENABLED else None)
