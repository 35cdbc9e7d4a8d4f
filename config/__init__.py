"""Configuration management for the ledger validity system."""

from .config import (
    SystemConfig,
    AccumulatorConfig,
    SignatureConfig,
    CircuitConfig,
    load_config,
    save_config,
)

__all__ = ['SystemConfig', 'AccumulatorConfig', 'SignatureConfig', 'CircuitConfig',
           'load_config', 'save_config']
