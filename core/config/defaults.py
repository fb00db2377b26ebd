# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - Default configuration values
# PURPOSE: Engine limits and kleuren pipeline settings in explicit structs
# CREATED: 18 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides defaults for the execution engine and for the kleuren pipeline.
Values can be overridden via environment variables or passed explicitly;
nothing is read into module-level globals.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides via from_env()
- validate() returns a list of problems instead of raising
"""

import os
from dataclasses import dataclass, replace
from typing import List, Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


@dataclass(frozen=True)
class EngineDefaults:
    """
    Defaults for the scheduler and the external process executor.
    """
    # Worker slots running external commands at once
    max_concurrency: int = 4

    # Shell used to run resolved command lines
    shell: str = "/bin/sh"

    # Seconds between SIGTERM and SIGKILL when a child must be stopped
    kill_grace_seconds: float = 5.0

    # Per-process wall clock limit (None = unlimited)
    process_timeout_seconds: Optional[float] = None

    # Keep running independent branches after a failure
    keep_going: bool = True

    # Delete outputs a failed attempt left behind, so they are not
    # mistaken for fresh results on the next run
    remove_partial_outputs: bool = True

    # Characters of stderr kept in a failure message
    stderr_tail_chars: int = 1000

    def validate(self) -> List[str]:
        errors = []
        if self.max_concurrency < 1:
            errors.append(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if self.kill_grace_seconds < 0:
            errors.append(f"kill_grace_seconds must be >= 0, got {self.kill_grace_seconds}")
        if self.process_timeout_seconds is not None and self.process_timeout_seconds <= 0:
            errors.append(
                f"process_timeout_seconds must be > 0, got {self.process_timeout_seconds}"
            )
        return errors

    def with_overrides(self, **kwargs) -> "EngineDefaults":
        """Copy with non-None keyword overrides applied."""
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})

    @classmethod
    def from_env(cls) -> "EngineDefaults":
        """Create from environment variables."""
        return cls(
            max_concurrency=int(os.getenv("PIPELINE_MAX_CONCURRENCY", 4)),
            shell=os.getenv("PIPELINE_SHELL", "/bin/sh"),
            kill_grace_seconds=float(os.getenv("PIPELINE_KILL_GRACE_SECONDS", 5.0)),
            process_timeout_seconds=_env_float("PIPELINE_PROCESS_TIMEOUT_SECONDS"),
            keep_going=_env_bool("PIPELINE_KEEP_GOING", True),
            remove_partial_outputs=_env_bool("PIPELINE_REMOVE_PARTIAL_OUTPUTS", True),
        )


@dataclass(frozen=True)
class PipelineConfig:
    """
    Settings for the kleuren pipeline (jellyfish -> bft -> kleuren).

    Handed to the graph construction functions; the engine itself only ever
    sees the resulting literal parameter bindings.
    """
    # Paths to executables
    jellyfish_path: str = "./jellyfish"
    kleuren_path: str = "./kleuren"
    bft_path: str = "./bft"

    # Genome discovery
    genome_dir: str = "./data"
    genome_pattern: str = "fasta"  # extension, no leading dot

    # k-mer size (positive multiple of 9)
    kmer_size: int = 9

    # Bubble detection
    min_colors: int = 1
    max_depth: int = 30

    # jellyfish hash sizes
    single_hash_size: str = "100M"
    multi_hash_size: str = "500M"

    # Where intermediate and final files go (default: genome_dir)
    output_dir: Optional[str] = None

    @property
    def resolved_output_dir(self) -> str:
        return os.path.abspath(self.output_dir or self.genome_dir)

    def validate(self) -> List[str]:
        """
        Validate settings.

        Returns list of validation errors (empty if valid).
        """
        errors = []
        if self.kmer_size <= 0 or self.kmer_size % 9 != 0:
            errors.append(f"kmer_size must be a positive multiple of 9, got {self.kmer_size}")
        if self.min_colors < 0:
            errors.append(f"min_colors must be >= 0, got {self.min_colors}")
        if self.max_depth < 1:
            errors.append(f"max_depth must be >= 1, got {self.max_depth}")
        if not self.genome_pattern or self.genome_pattern.startswith("."):
            errors.append(
                f"genome_pattern must be an extension without a leading '.', "
                f"got '{self.genome_pattern}'"
            )
        return errors

    def with_overrides(self, **kwargs) -> "PipelineConfig":
        """Copy with non-None keyword overrides applied."""
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Create from environment variables."""
        return cls(
            jellyfish_path=os.getenv("KLEUREN_JELLYFISH", "./jellyfish"),
            kleuren_path=os.getenv("KLEUREN_KLEUREN", "./kleuren"),
            bft_path=os.getenv("KLEUREN_BFT", "./bft"),
            genome_dir=os.getenv("KLEUREN_GENOME_DIR", "./data"),
            genome_pattern=os.getenv("KLEUREN_GENOME_PATTERN", "fasta"),
            kmer_size=int(os.getenv("KLEUREN_KMER_SIZE", 9)),
            min_colors=int(os.getenv("KLEUREN_MIN_COLORS", 1)),
            max_depth=int(os.getenv("KLEUREN_MAX_DEPTH", 30)),
            output_dir=os.getenv("KLEUREN_OUTPUT_DIR") or None,
        )


def get_defaults() -> EngineDefaults:
    """Engine defaults with environment overrides applied."""
    return EngineDefaults.from_env()
