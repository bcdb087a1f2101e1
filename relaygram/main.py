"""
Entry point module for the relaygram service.

This module wires up configuration, logging, the health/metrics server, and
the Telegram bridge, then runs until SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import logging
import signal

import uvicorn
from dotenv import load_dotenv


def _ensure_event_loop_policy() -> None:
    """Install uvloop if available for better performance."""
    try:
        import uvloop  # type: ignore

        asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    except ImportError:  # pragma: no cover - uvloop is not built for Windows
        pass


async def _async_main() -> None:
    """Async entry point that sets up services and starts the bridge."""
    from .runtime.config import AppConfig
    from .runtime.logging_setup import setup_logging
    from .web.health import app as health_app, bind_state
    from .bot.service import BridgeService

    config = AppConfig.from_env()
    # Raise before anything waits on the network or stdin
    config.validate()
    setup_logging(config)

    logger = logging.getLogger("relaygram")
    logger.info("starting relaygram", extra={"destination": config.dest_channel})

    health_server = uvicorn.Server(
        config=uvicorn.Config(
            app=health_app,
            host="127.0.0.1" if config.bind_health_localhost_only else "0.0.0.0",
            port=config.health_port,
            log_level="info",
            access_log=False,
        )
    )
    health_task = asyncio.create_task(health_server.serve())
    logger.info("health server started", extra={"port": config.health_port})

    bridge = BridgeService(config)
    await bridge.start()
    bind_state(bridge.snapshot, config)

    stop_event = asyncio.Event()

    def _handle_signal(signame: str) -> None:
        logger.warning("received signal, stopping", extra={"signal": signame})
        stop_event.set()

    loop = asyncio.get_running_loop()
    for signame in ("SIGINT", "SIGTERM"):
        if hasattr(signal, signame):
            loop.add_signal_handler(getattr(signal, signame), _handle_signal, signame)

    try:
        await stop_event.wait()
    finally:
        logger.info("shutting down services")
        await bridge.stop()
        health_server.should_exit = True
        try:
            await asyncio.wait_for(health_task, timeout=5)
        except asyncio.TimeoutError:
            health_task.cancel()
        logger.info("shutdown complete")


def main() -> None:
    load_dotenv()
    _ensure_event_loop_policy()
    try:
        asyncio.run(_async_main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
