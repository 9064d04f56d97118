#!/usr/bin/env python3
"""snapsolve Socket.IO Server

This module implements the Socket.IO server that is the boundary between the
UI and the processing pipeline. UI commands arrive as Socket.IO events and are
answered with acknowledgements; pipeline progress goes back out as events to
the configured room.

Key Features:
- Screenshot capture, deletion and previews
- Solve / debug pipeline triggers (run as background tasks)
- Cancellation and full reset
- Credits and language handshake with the UI
- Activity history for the UI log panel
"""
import sys
import logging
import argparse
import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

import socketio
from aiohttp import web
from dotenv import load_dotenv

from ..core.llm_gateway import LLMGateway
from ..core.message_system import MessageManager
from ..core.orchestrator import ProcessingOrchestrator
from ..core.screenshot_store import ScreenshotStore
from ..core.state import AppState, ProcessingSettings
from ..utils import ConfigManager, EventType, setup_logging
from ..utils.message_utils import create_command_result, create_welcome_message
from .notifier import SocketIONotifier

logger = logging.getLogger(__name__)


def _field(data: Any, key: str) -> Any:
    """Commands accept either a bare value or a {key: value} object."""
    if isinstance(data, dict):
        return data.get(key)
    return data


class SolverSocketServer:
    """Registers the UI command handlers on a Socket.IO server."""

    def __init__(self, sio: socketio.AsyncServer, orchestrator: ProcessingOrchestrator, room: Optional[str] = None):
        self.sio = sio
        self.orchestrator = orchestrator
        self.room = room
        self.app = web.Application()
        self.sio.attach(self.app)
        self.connected_clients: Dict[str, Dict[str, Any]] = {}
        self._tasks = set()
        self.register_handlers()

    def register_handlers(self):
        """Register Socket.IO event handlers."""
        self.sio.on('connect', self.on_connect)
        self.sio.on('disconnect', self.on_disconnect)
        self.sio.on('client_ready', self.on_client_ready)
        self.sio.on('trigger_screenshot', self.on_trigger_screenshot)
        self.sio.on('delete_screenshot', self.on_delete_screenshot)
        self.sio.on('get_screenshots', self.on_get_screenshots)
        self.sio.on('process_screenshots', self.on_process_screenshots)
        self.sio.on('run_solve', self.on_run_solve)
        self.sio.on('run_debug', self.on_run_debug)
        self.sio.on('cancel', self.on_cancel)
        self.sio.on('reset', self.on_reset)
        self.sio.on('set_language', self.on_set_language)
        self.sio.on('get_credits', self.on_get_credits)
        self.sio.on('set_credits', self.on_set_credits)
        self.sio.on('get_activity', self.on_get_activity)

    # --- Connection lifecycle ---

    async def on_connect(self, sid: str, environ: Dict, auth: Optional[Dict] = None):
        client_ip = environ.get('REMOTE_ADDR', 'Unknown IP')
        self.connected_clients[sid] = {
            "address": client_ip,
            "connect_time": datetime.now().isoformat()
        }
        if self.room:
            await self.sio.enter_room(sid, self.room)
        await self.sio.send(create_welcome_message(sid), to=sid)
        logger.info(f"Client connected: {sid} ({client_ip})")

    async def on_disconnect(self, sid: str, reason: Any = None):
        client_info = self.connected_clients.pop(sid, None)
        if client_info is None:
            logger.warning(f"Disconnect event received for unknown SID: {sid}")
            return
        logger.info(f"Client disconnected: {sid} ({client_info.get('address', 'Unknown IP')})")

    async def on_client_ready(self, sid: str, data: Optional[Dict] = None):
        """UI handshake: optional initial credits and language, then mark the app ready."""
        data = data or {}
        try:
            if data.get('credits') is not None:
                await self.orchestrator.set_credits(int(data['credits']))
            if data.get('language'):
                self.orchestrator.set_language(str(data['language']))
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid client_ready payload from {sid}: {e}")
            return create_command_result(False, error=str(e))
        self.orchestrator.state.mark_ready()
        if data.get('credits') is None:
            await self.sio.emit(EventType.CREDITS_UPDATED.value, self.orchestrator.state.credits, to=sid)
        return create_command_result(credits=self.orchestrator.state.credits,
                                     language=self.orchestrator.state.language)

    # --- Screenshot commands ---

    async def on_trigger_screenshot(self, sid: str, data: Any = None):
        try:
            ref = await self.orchestrator.capture()
        except Exception as e:
            logger.error(f"Error taking screenshot: {e}", exc_info=True)
            return create_command_result(False, error="Failed to take screenshot")
        return create_command_result(path=ref.path)

    async def on_delete_screenshot(self, sid: str, data: Any = None):
        path = _field(data, 'path')
        if not path:
            return create_command_result(False, error="Screenshot path is required")
        if not self.orchestrator.delete_screenshot(path):
            return create_command_result(False, error="Screenshot not found")
        return create_command_result()

    async def on_get_screenshots(self, sid: str, data: Any = None):
        try:
            previews = await self.orchestrator.get_screenshots()
        except OSError as e:
            logger.error(f"Error getting screenshots: {e}")
            return create_command_result(False, error="Failed to get screenshots")
        return create_command_result(previews=previews)

    # --- Pipeline commands ---

    def _start(self, coroutine_function):
        task = self.sio.start_background_task(coroutine_function)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def on_process_screenshots(self, sid: str, data: Any = None):
        self._start(self.orchestrator.process_screenshots)
        return create_command_result()

    async def on_run_solve(self, sid: str, data: Any = None):
        self._start(self.orchestrator.run_solve)
        return create_command_result()

    async def on_run_debug(self, sid: str, data: Any = None):
        self._start(self.orchestrator.run_debug)
        return create_command_result()

    async def on_cancel(self, sid: str, data: Any = None):
        cancelled = await self.orchestrator.cancel_all()
        return create_command_result(cancelled=cancelled)

    async def on_reset(self, sid: str, data: Any = None):
        await self.orchestrator.reset()
        return create_command_result()

    # --- Settings ---

    async def on_set_language(self, sid: str, data: Any = None):
        language = _field(data, 'language')
        if not language or not isinstance(language, str):
            return create_command_result(False, error="Language is required")
        self.orchestrator.set_language(language)
        return create_command_result(language=self.orchestrator.state.language)

    async def on_get_credits(self, sid: str, data: Any = None):
        return create_command_result(credits=self.orchestrator.state.credits)

    async def on_set_credits(self, sid: str, data: Any = None):
        try:
            credits = await self.orchestrator.set_credits(int(_field(data, 'credits')))
        except (TypeError, ValueError) as e:
            return create_command_result(False, error=f"Invalid credits: {e}")
        return create_command_result(credits=credits)

    async def on_get_activity(self, sid: str, data: Any = None):
        buffer_name = _field(data, 'buffer') or "main"
        messages = self.orchestrator.messages.get_formatted_messages(buffer_name)
        return create_command_result(messages=messages)

    async def shutdown(self):
        await self.orchestrator.cancel_all()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)


def build_server(config_manager: ConfigManager, gateway: Optional[LLMGateway] = None,
                 store: Optional[ScreenshotStore] = None) -> SolverSocketServer:
    """Wire configuration, pipeline components and the Socket.IO server together."""
    room = config_manager.get('server', 'room', default='snapsolve_room')
    sio = socketio.AsyncServer(
        async_mode='aiohttp',
        cors_allowed_origins=config_manager.get('server', 'cors_origins', default='*'),
        logger=False,
        engineio_logger=False
    )
    state = AppState(
        credits=int(config_manager.get('processing', 'initial_credits', default=0)),
        ready=not config_manager.get('processing', 'require_client_ready', default=True)
    )
    if store is None:
        store = ScreenshotStore(
            max_queue_size=int(config_manager.get('screenshots', 'max_queue_size', default=2)),
            preview_size=int(config_manager.get('screenshots', 'preview_size', default=320))
        )
    orchestrator = ProcessingOrchestrator(
        store=store,
        gateway=gateway or LLMGateway.from_config(config_manager),
        notifier=SocketIONotifier(sio, room),
        state=state,
        settings=ProcessingSettings.from_config(config_manager),
        messages=MessageManager()
    )
    return SolverSocketServer(sio, orchestrator, room)


# --- Argument Parsing ---
def parse_args(config_manager: ConfigManager, argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="snapsolve Socket.IO Server")
    parser.add_argument('--host', type=str, default=config_manager.get('server', 'host', default='127.0.0.1'),
                        help='Host IP address to bind the server to.')
    parser.add_argument('--port', type=int, default=config_manager.get('server', 'port', default=5348),
                        help='Port number to bind the server to.')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    return parser.parse_args(argv)


# --- Server Lifecycle ---

async def start_server(server: SolverSocketServer, host: str, port: int):
    """Starts the Socket.IO server and serves until cancelled."""
    runner = web.AppRunner(server.app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)

    logger.info(f"Starting Socket.IO server on {host}:{port}")
    await site.start()
    logger.info(f"Socket.IO server running. Default room: {server.room}")
    try:
        await asyncio.Event().wait()
    finally:
        await server.shutdown()
        await runner.cleanup()
        logger.info("Socket.IO server stopped")


def main(argv=None):
    """Main entry point."""
    load_dotenv()
    config_manager = ConfigManager()
    args = parse_args(config_manager, argv)
    level = "DEBUG" if args.debug else config_manager.get('logging', 'level', default='INFO')
    setup_logging(level, config_manager.get('logging', 'format'))

    server = build_server(config_manager)
    if not server.orchestrator.gateway.is_configured():
        logger.warning("No LLM API key configured; solve and debug requests will fail until one is set")

    try:
        asyncio.run(start_server(server, args.host, args.port))
    except KeyboardInterrupt:
        logger.info("Server stopped by user (KeyboardInterrupt).")
    except Exception as e:
        logger.critical(f"Server encountered critical error: {e}", exc_info=True)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
