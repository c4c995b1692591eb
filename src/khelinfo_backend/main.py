"""
Main orchestrator for the Khelinfo backend

Creates the cache store once, wires it into the refresh scheduler and the
HTTP application, and runs both on one event loop until the process is told
to stop.
"""

import asyncio
import logging
import signal
import sys
import time
from typing import Any, Dict, Optional

from aiohttp import web

from .cache import CacheStore
from .client import UpstreamClient
from .config import ProxyConfig, load_config
from .news import NewsProxy
from .parser import create_parser
from .poller import RefreshScheduler, create_scheduler
from .resources import RESOURCES
from .server import create_app

logger = logging.getLogger(__name__)


class KhelinfoBackend:
    """Main orchestrator for the caching proxy"""

    def __init__(self, config_path: str = "config/khelinfo.yaml",
                 config: Optional[ProxyConfig] = None):
        self.config_path = config_path
        self.config: Optional[ProxyConfig] = config
        self.cache: Optional[CacheStore] = None
        self.client: Optional[UpstreamClient] = None
        self.news_proxy: Optional[NewsProxy] = None
        self.scheduler: Optional[RefreshScheduler] = None
        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None

        # Runtime state
        self.running = False
        self.startup_complete = False
        self.start_time = 0
        self._stop_event: Optional[asyncio.Event] = None

    async def initialize(self):
        """Initialize all backend components"""
        self.start_time = time.time()

        if self.config is None:
            self.config = load_config(self.config_path)
            logger.info(f"Loaded configuration from {self.config_path}")
        self._setup_logging()

        self.cache = CacheStore(self.config.cache)
        self.client = UpstreamClient(self.config.upstream)
        self.news_proxy = NewsProxy(self.config.news)
        self.scheduler = create_scheduler(
            self.config.polling, self.cache, self.client, create_parser()
        )
        self.app = create_app(self.cache, self.news_proxy, self.config.server, self.scheduler)

        self.startup_complete = True
        logger.info(f"Initialized {len(self.cache.resource_types)} cache slots "
                    f"in {time.time() - self.start_time:.2f}s")

    async def start(self, install_signal_handlers: bool = True):
        """Start the scheduler and the HTTP server"""
        if self.running:
            logger.warning("Backend already running")
            return

        if not self.startup_complete:
            await self.initialize()

        self.running = True
        self._stop_event = asyncio.Event()

        await self.client.start()
        await self.scheduler.start_polling()

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, self.config.server.host, self.config.server.port)
        await site.start()

        logger.info(f"Server running on {self.config.server.host}:{self.config.server.port}")

        if sys.platform != 'win32' and install_signal_handlers:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, lambda: asyncio.create_task(self.stop()))

    async def stop(self):
        """Stop serving and cancel background refreshes"""
        if not self.running:
            return

        logger.info("Stopping Khelinfo backend...")
        self.running = False

        if self.runner:
            await self.runner.cleanup()
            self.runner = None
        if self.scheduler:
            await self.scheduler.stop_polling()
        if self.client:
            await self.client.close()
        if self.news_proxy:
            await self.news_proxy.close()

        if self._stop_event:
            self._stop_event.set()

        logger.info("Khelinfo backend stopped")

    async def run_forever(self):
        """Run until stop() is called or a signal arrives"""
        await self.start()

        try:
            await self._stop_event.wait()
        finally:
            await self.stop()

    def _setup_logging(self):
        """Setup logging configuration"""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if log_level > logging.DEBUG:
            logging.getLogger('aiohttp.access').setLevel(logging.WARNING)

        if self.config.log_file:
            file_handler = logging.FileHandler(self.config.log_file)
            file_handler.setFormatter(
                logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            )
            logging.getLogger().addHandler(file_handler)

    def get_status(self) -> Dict[str, Any]:
        """Get backend status"""
        status = {
            'running': self.running,
            'startup_complete': self.startup_complete,
            'config_path': self.config_path,
        }

        if self.startup_complete:
            status['uptime'] = time.time() - self.start_time
            status['polling'] = self.scheduler.get_polling_stats()
            status['cache'] = self.cache.get_cache_stats()

        return status


def main():
    """Console entry point"""
    import argparse

    parser = argparse.ArgumentParser(description='Khelinfo caching backend')
    parser.add_argument('--config', default='config/khelinfo.yaml',
                        help='Configuration file path')
    parser.add_argument('--create-config', action='store_true',
                        help='Create sample configuration file and exit')
    parser.add_argument('--status', action='store_true',
                        help='Show resource schedule and exit')

    args = parser.parse_args()

    if args.create_config:
        from .config import create_sample_config
        create_sample_config(args.config)
        print(f"Sample configuration created at {args.config}")
        return

    if args.status:
        config = load_config(args.config)
        print("\nResource schedule:")
        for resource_type, spec in RESOURCES.items():
            print(f"  {resource_type.value:<12} every {spec.interval(config.polling):>5}s  "
                  f"{spec.route} <- {spec.endpoint}")
        return

    backend = KhelinfoBackend(args.config)
    try:
        asyncio.run(backend.run_forever())
    except KeyboardInterrupt:
        print("\nShutdown requested")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
