# ============================================================================
# PIPELINES MODULE
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Client - Concrete workflows built on the engine
# PURPOSE: The kleuren pipeline graph and the command line front end
# CREATED: 18 OCT 2026
# ============================================================================
"""
Pipelines Module

Usage:
    from core.config import PipelineConfig
    from pipelines import build_kleuren_workflow, discover_genomes

    config = PipelineConfig(genome_dir="./data")
    workflow = build_kleuren_workflow(
        config, discover_genomes(config.genome_dir, config.genome_pattern)
    )
"""

from .kleuren import build_kleuren_workflow, discover_genomes, genome_stem

__all__ = [
    "build_kleuren_workflow",
    "discover_genomes",
    "genome_stem",
]
