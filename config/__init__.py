from .config import (
    CryptoConfig,
    TransportConfig,
    RunConfig,
    DEFAULT_CONFIG,
    get_config
)

__all__ = [
    'CryptoConfig',
    'TransportConfig',
    'RunConfig',
    'DEFAULT_CONFIG',
    'get_config'
]
