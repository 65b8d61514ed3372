import logging

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from api.presentations import router as presentations_router
from api.websocket import websocket_endpoint
from collab import Broadcaster, DocumentStore, PresentationHandlers, SessionRegistry
from config import CORS_ORIGINS, DATABASE_URL, HOST, LOG_LEVEL, PORT
from database.database import create_tables, make_engine, make_session_factory

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(database_url: str = DATABASE_URL) -> FastAPI:
    """
    Build the app and its collaborators.

    The registry, broadcaster, store and handlers live on ``app.state`` for
    the lifetime of the app; nothing is module-global.
    """
    engine = make_engine(database_url)

    app = FastAPI(
        title="Presentation Collaboration Backend",
        description="Real-time shared slide editing over WebSockets",
        version="1.0.0"
    )

    # Add CORS middleware for frontend connections
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = SessionRegistry()
    broadcaster = Broadcaster(registry)
    store = DocumentStore(make_session_factory(engine))
    app.state.registry = registry
    app.state.broadcaster = broadcaster
    app.state.store = store
    app.state.handlers = PresentationHandlers(store, registry, broadcaster)

    app.include_router(presentations_router)

    @app.on_event("startup")
    async def startup_event():
        """Create tables on startup"""
        create_tables(engine)
        logger.info(f"Document store ready ({engine.url.render_as_string(hide_password=True)})")

    @app.on_event("shutdown")
    async def shutdown_event():
        engine.dispose()
        logger.info("Document store closed")

    @app.websocket("/ws/presentations")
    async def presentation_websocket(websocket: WebSocket):
        """WebSocket endpoint for presentation events"""
        await websocket_endpoint(websocket, app.state.handlers)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "presentation-collab-backend",
            "channels": len(app.state.registry.get_active_channels()),
        }

    @app.get("/")
    async def root():
        return {"message": "Presentation API is running!"}

    return app


app = create_app()


if __name__ == "__main__":
    # Run the server
    uvicorn.run(
        "main:app",
        host=HOST,
        port=PORT,
        reload=True,
        log_level=LOG_LEVEL.lower()
    )
