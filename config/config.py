import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class AccumulatorConfig:
    tree_depth: int = 3
    leaf_size: int = 72
    window_size: int = 4
    num_windows: int = 256
    parallel_workers: int = 1

    def __post_init__(self):
        if self.tree_depth < 1:
            raise ValueError("tree_depth must be at least 1")
        if self.leaf_size * 8 > self.window_size * self.num_windows:
            raise ValueError(
                f"A {self.leaf_size}-byte leaf exceeds the Pedersen input capacity")


@dataclass
class SignatureConfig:
    max_signing_attempts: int = 1024


@dataclass
class CircuitConfig:
    backend: str = "reference"
    batch_workers: int = 4
    check_native_before_proving: bool = True


@dataclass
class SystemConfig:
    accumulator: AccumulatorConfig = field(default_factory=AccumulatorConfig)
    signature: SignatureConfig = field(default_factory=SignatureConfig)
    circuit: CircuitConfig = field(default_factory=CircuitConfig)

    seed: Optional[int] = None
    log_level: str = "INFO"
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    results_dir: Path = field(default_factory=lambda: Path("results"))
    enable_benchmarking: bool = True
    enable_debug_mode: bool = False

    def __post_init__(self):
        self.log_dir = Path(self.log_dir)
        self.results_dir = Path(self.results_dir)
        if self.enable_debug_mode:
            self.log_level = "DEBUG"


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """Load configuration from file or return default"""
    if config_path is None:
        config_path = Path("config.yaml")
    config_path = Path(config_path)

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}

            accumulator_data = config_data.get('accumulator', {})
            accumulator = AccumulatorConfig(
                tree_depth=accumulator_data.get('tree_depth', 3),
                leaf_size=accumulator_data.get('leaf_size', 72),
                window_size=accumulator_data.get('window_size', 4),
                num_windows=accumulator_data.get('num_windows', 256),
                parallel_workers=accumulator_data.get('parallel_workers', 1)
            )

            signature_data = config_data.get('signature', {})
            signature = SignatureConfig(
                max_signing_attempts=signature_data.get('max_signing_attempts', 1024)
            )

            circuit_data = config_data.get('circuit', {})
            circuit = CircuitConfig(
                backend=circuit_data.get('backend', 'reference'),
                batch_workers=circuit_data.get('batch_workers', 4),
                check_native_before_proving=circuit_data.get('check_native_before_proving', True)
            )

            return SystemConfig(
                accumulator=accumulator,
                signature=signature,
                circuit=circuit,
                seed=config_data.get('seed'),
                log_level=config_data.get('log_level', 'INFO'),
                log_dir=Path(config_data.get('log_dir', 'logs')),
                results_dir=Path(config_data.get('results_dir', 'results')),
                enable_benchmarking=config_data.get('enable_benchmarking', True),
                enable_debug_mode=config_data.get('enable_debug_mode', False)
            )
        except (OSError, yaml.YAMLError, ValueError, AttributeError) as e:
            logger.warning(f"Could not load config file {config_path}: {e}")
            logger.warning("Using default configuration")

    return SystemConfig()


def save_config(config: SystemConfig, config_path: Optional[Path] = None):
    """Save configuration to YAML file"""
    if config_path is None:
        config_path = Path("config.yaml")

    config_data = {
        'accumulator': {
            'tree_depth': config.accumulator.tree_depth,
            'leaf_size': config.accumulator.leaf_size,
            'window_size': config.accumulator.window_size,
            'num_windows': config.accumulator.num_windows,
            'parallel_workers': config.accumulator.parallel_workers
        },
        'signature': {
            'max_signing_attempts': config.signature.max_signing_attempts
        },
        'circuit': {
            'backend': config.circuit.backend,
            'batch_workers': config.circuit.batch_workers,
            'check_native_before_proving': config.circuit.check_native_before_proving
        },
        'seed': config.seed,
        'log_level': config.log_level,
        'log_dir': str(config.log_dir),
        'results_dir': str(config.results_dir),
        'enable_benchmarking': config.enable_benchmarking,
        'enable_debug_mode': config.enable_debug_mode
    }

    with open(config_path, 'w') as f:
        yaml.dump(config_data, f, default_flow_style=False)
