import asyncio
from pathlib import Path

from loguru import logger

from core.config import ConfigManager
from core.controller import ModeController
from core.scheduler import AsyncioScheduler

# Base directory for the hextech package
BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"


class AssistantService:
    """Boots the orchestrator and serves its command/observation API."""

    def __init__(self, data_dir: Path = DATA_DIR):
        self.config_manager = ConfigManager(data_dir)
        self.controller = None
        self._server = None

    def _build_controller(self) -> ModeController:
        from llm.base import LLMRouter

        router = LLMRouter(self.config_manager)
        return ModeController(
            router.generate_response,
            scheduler=AsyncioScheduler(),
            config=self.config_manager.config,
        )

    async def start(self):
        """Boot sequence: load config, build the controller, serve the API."""
        logger.info("=== Hextech Assistant starting ===")

        config = self.config_manager.config
        self.controller = self._build_controller()
        logger.info(
            "LLM mode: {} (provider: {}). Mode: {}",
            config.mode, config.provider, self.controller.mode.value,
        )

        from api.server import create_app

        app = create_app(self.config_manager, self.controller)

        import uvicorn
        server_config = uvicorn.Config(
            app, host=config.server.host, port=config.server.port, log_level="warning"
        )
        self._server = uvicorn.Server(server_config)
        logger.info("API server listening on {}:{}", config.server.host, config.server.port)
        await self._server.serve()

    async def shutdown(self):
        """Graceful shutdown."""
        logger.info("Shutting down...")
        if self._server is not None:
            self._server.should_exit = True
        if self.controller is not None:
            await self.controller.shutdown()
        logger.info("Shutdown complete.")


def main():
    """Entry point."""
    import sys
    from loguru import logger as log

    log.remove()
    log.add(sys.stderr, level="INFO", format="{time:HH:mm:ss} | {level:<7} | {message}")
    log.add(DATA_DIR / "assistant.log", rotation="10 MB", retention="7 days", level="DEBUG")

    service = AssistantService()

    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(service.start())
    except KeyboardInterrupt:
        loop.run_until_complete(service.shutdown())
    finally:
        loop.close()


if __name__ == "__main__":
    main()
