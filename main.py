import sys
import uvicorn
from backend.server import create_app
from shared.config import Settings, load_settings
from shared.logging_config import setup_logger

# Set up logger
logger = setup_logger(__name__)

def build_server(settings: Settings) -> uvicorn.Server:
    """Create the uvicorn server for the app bound to the given settings."""
    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.http_port,
        log_level="info",
        workers=1,
        loop="asyncio",
        timeout_keep_alive=30,
        timeout_graceful_shutdown=10,
    )
    return uvicorn.Server(config)

def main():
    """Main entry point"""
    try:
        settings = load_settings()
        logger.info(f"Main: Starting Disk Manager backend on http://{settings.host}:{settings.http_port}")
        logger.info(f"Main: Serving storage root {settings.storage_dir}")
        server = build_server(settings)
        server.run()
    except Exception as e:
        logger.critical(f"Application critical error: {str(e)}", exc_info=True)
        sys.exit(1)
    logger.info("Main: Application shutdown complete.")


if __name__ == "__main__":
    main()
