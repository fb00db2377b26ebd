# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 18 OCT 2026
# ============================================================================
"""
Configuration Module

Provides explicit configuration structs for the engine and the pipeline.
"""

from core.config.defaults import (
    EngineDefaults,
    PipelineConfig,
    get_defaults,
)

__all__ = [
    "EngineDefaults",
    "PipelineConfig",
    "get_defaults",
]
