"""
Configuration loader for the Khelinfo backend

Handles loading and parsing of YAML/JSON configuration files for:
- Refresh intervals per resource cadence
- Upstream (SportMonks) and news provider settings
- HTTP server binding and CORS allow-list
"""

import json
import yaml
import os
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

logger = logging.getLogger(__name__)


DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "https://khelinfo-frontend.vercel.app",
]


@dataclass
class PollingConfig:
    """Refresh intervals, read once at startup"""
    live_scores: int = 4  # seconds between live score polls
    rankings: int = 300  # seconds for team rankings
    static: int = 3600  # seconds for countries, teams, players, etc.


@dataclass
class CacheConfig:
    """Configuration for the in-memory cache store"""
    live_match_limit: int = 10


@dataclass
class UpstreamConfig:
    """SportMonks cricket API settings"""
    base_url: str = "https://cricket.sportmonks.com/api/v2.0"
    api_token: Optional[str] = None
    user_agent: str = "Khelinfo-Backend/1.0"


@dataclass
class NewsConfig:
    """News provider settings; query parameters are fixed by the frontend"""
    base_url: str = "https://newsapi.org/v2/everything"
    api_key: Optional[str] = None
    query: str = "sports"
    page_size: int = 13
    language: str = "en"
    sort_by: str = "publishedAt"


@dataclass
class ServerConfig:
    """HTTP server binding"""
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    cors_methods: List[str] = field(default_factory=lambda: ["GET", "POST", "PUT", "DELETE"])


@dataclass
class ProxyConfig:
    """Main configuration class for the backend"""
    polling: PollingConfig = field(default_factory=PollingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    news: NewsConfig = field(default_factory=NewsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def load_from_file(cls, config_path: str) -> 'ProxyConfig':
        """Load configuration from YAML or JSON file"""
        path = Path(config_path)

        if not path.exists():
            logger.warning(f"Config file {config_path} not found, using defaults")
            return cls()

        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() in ['.yaml', '.yml']:
                config_data = yaml.safe_load(f) or {}
            else:
                config_data = json.load(f)

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ProxyConfig':
        """Create configuration from dictionary"""
        sections = {
            'polling': PollingConfig(**config_dict.get('polling', {})),
            'cache': CacheConfig(**config_dict.get('cache', {})),
            'upstream': UpstreamConfig(**config_dict.get('upstream', {})),
            'news': NewsConfig(**config_dict.get('news', {})),
            'server': ServerConfig(**config_dict.get('server', {})),
        }

        main_config = {k: v for k, v in config_dict.items() if k not in sections}
        main_config.update(sections)

        return cls(**main_config)

    def apply_environment(self, environ: Optional[Dict[str, str]] = None) -> 'ProxyConfig':
        """Override secrets and deployment settings from the process environment"""
        environ = os.environ if environ is None else environ

        if environ.get('API_TOKEN'):
            self.upstream.api_token = environ['API_TOKEN']
        if environ.get('NEWS_API_KEY'):
            self.news.api_key = environ['NEWS_API_KEY']
        if environ.get('PORT'):
            self.server.port = int(environ['PORT'])
        if environ.get('LOG_LEVEL'):
            self.log_level = environ['LOG_LEVEL']

        if not self.upstream.api_token:
            logger.warning("API_TOKEN is not set, upstream requests will be rejected")

        return self


def load_config(config_path: str = "config/khelinfo.yaml") -> ProxyConfig:
    """Load configuration from file or use defaults, then apply environment overrides"""
    try:
        config = ProxyConfig.load_from_file(config_path)
    except Exception as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        logger.info("Using default configuration")
        config = ProxyConfig()

    return config.apply_environment()


def create_sample_config(output_path: str = "config/khelinfo.yaml"):
    """Create a sample configuration file"""
    config_dict = {
        'polling': {
            'live_scores': 4,
            'rankings': 300,
            'static': 3600
        },
        'cache': {
            'live_match_limit': 10
        },
        'upstream': {
            'base_url': 'https://cricket.sportmonks.com/api/v2.0',
            'user_agent': 'Khelinfo-Backend/1.0'
        },
        'news': {
            'base_url': 'https://newsapi.org/v2/everything',
            'query': 'sports',
            'page_size': 13,
            'language': 'en',
            'sort_by': 'publishedAt'
        },
        'server': {
            'host': '0.0.0.0',
            'port': 5000,
            'cors_origins': list(DEFAULT_CORS_ORIGINS)
        },
        'log_level': 'INFO'
    }

    # Ensure directory exists
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Sample configuration created at {output_path}")
