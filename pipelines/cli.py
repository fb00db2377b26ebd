#!/usr/bin/env python3
# ============================================================================
# PIPELINE CLI
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Tool - Command line entry point
# PURPOSE: Run the kleuren pipeline or a YAML workflow from the shell
# CREATED: 18 OCT 2026
# ============================================================================
"""
Run workflows from the command line.

Usage:
    # kleuren pipeline over ./data/*.fasta with k=9
    kleuren-pipeline run --genome-dir ./data -k 9

    # Any YAML workflow, two worker slots, JSON report
    kleuren-pipeline workflow workflows/demo.yaml -j 2 --report run.json

    # Show the execution layers without running anything
    kleuren-pipeline run --dry-run

Exit status:
    0  every process succeeded or was skipped
    1  at least one process failed or was aborted
    2  invalid configuration, workflow file or graph

Settings not given as flags come from KLEUREN_* / PIPELINE_* environment
variables (see core.config.defaults).
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

import yaml

from __version__ import __version__
from core.config import EngineDefaults, PipelineConfig
from core.errors import WorkflowError
from core.logging import configure_logging
from core.models import RunResult, Workflow
from orchestrator import run_workflow
from pipelines.kleuren import build_kleuren_workflow, discover_genomes
from services import WorkflowService

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kleuren-pipeline",
        description="Assemble and run command-line tool workflows",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run --genome-dir ./data -k 18 --jellyfish /usr/bin/jellyfish
  %(prog)s workflow workflows/demo.yaml -j 2 --report run.json
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Shared engine flags
    engine = argparse.ArgumentParser(add_help=False)
    engine.add_argument(
        "--max-concurrency", "-j",
        type=int,
        help="Processes running at once (default: PIPELINE_MAX_CONCURRENCY or 4)",
    )
    engine.add_argument(
        "--timeout",
        type=float,
        help="Per-process timeout in seconds (default: none)",
    )
    engine.add_argument(
        "--stop-on-failure",
        action="store_true",
        help="Start no new processes after the first failure",
    )
    engine.add_argument(
        "--keep-partial-outputs",
        action="store_true",
        help="Leave files written by failed processes in place",
    )
    engine.add_argument(
        "--report",
        help="Write the run result as JSON to this path",
    )
    engine.add_argument(
        "--dry-run",
        action="store_true",
        help="Print execution layers and exit",
    )
    engine.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        help="Log level (default: LOG_LEVEL or INFO)",
    )
    engine.add_argument(
        "--json-logs",
        action="store_true",
        help="Log as JSON lines (also LOG_FORMAT=json)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", parents=[engine], help="Run the kleuren pipeline")
    run.add_argument("--jellyfish", help="Path to the jellyfish executable")
    run.add_argument("--kleuren", help="Path to the kleuren executable")
    run.add_argument("--bft", help="Path to the BFT executable")
    run.add_argument("--genome-dir", help="Directory containing the genomes")
    run.add_argument("--genome-pattern", help="Genome file extension, no leading '.'")
    run.add_argument("-k", "--kmer-size", type=int, help="k-mer size (multiple of 9)")
    run.add_argument("--min-colors", type=int, help="Minimum colors for a bubble")
    run.add_argument("--max-depth", type=int, help="Maximum bubble search depth")
    run.add_argument("--output-dir", help="Where outputs go (default: genome dir)")

    wf = sub.add_parser("workflow", parents=[engine], help="Run a YAML workflow file")
    wf.add_argument("file", help="Workflow YAML file")

    return parser


def load_pipeline_workflow(args: argparse.Namespace) -> Workflow:
    config = PipelineConfig.from_env().with_overrides(
        jellyfish_path=args.jellyfish,
        kleuren_path=args.kleuren,
        bft_path=args.bft,
        genome_dir=args.genome_dir,
        genome_pattern=args.genome_pattern,
        kmer_size=args.kmer_size,
        min_colors=args.min_colors,
        max_depth=args.max_depth,
        output_dir=args.output_dir,
    )
    errors = config.validate()
    if errors:
        raise ValueError("; ".join(errors))

    genomes = discover_genomes(config.genome_dir, config.genome_pattern)
    return build_kleuren_workflow(config, genomes)


def engine_defaults(args: argparse.Namespace) -> EngineDefaults:
    defaults = EngineDefaults.from_env().with_overrides(
        max_concurrency=args.max_concurrency,
        process_timeout_seconds=args.timeout,
    )
    if args.stop_on_failure:
        defaults = defaults.with_overrides(keep_going=False)
    if args.keep_partial_outputs:
        defaults = defaults.with_overrides(remove_partial_outputs=False)

    errors = defaults.validate()
    if errors:
        raise ValueError("; ".join(errors))
    return defaults


def print_plan(workflow: Workflow) -> None:
    print(f"Workflow {workflow.name}: {len(workflow.processes)} processes")
    for index, layer in enumerate(workflow.layers()):
        print(f"  layer {index}: {', '.join(layer)}")


def print_result(result: RunResult) -> None:
    for line in result.summary_lines():
        print(line)


def write_report(result: RunResult, path: str) -> None:
    with open(path, "w") as f:
        json.dump(result.to_dict(), f, indent=2, default=str)
    logger.info(f"Wrote run report to {path}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, json_output=args.json_logs)

    try:
        defaults = engine_defaults(args)
        if args.command == "run":
            workflow = load_pipeline_workflow(args)
        else:
            workflow = WorkflowService().load_file(args.file)
    except (ValueError, OSError, yaml.YAMLError, WorkflowError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_INVALID

    if args.dry_run:
        print_plan(workflow)
        return EXIT_SUCCESS

    result = run_workflow(workflow, defaults=defaults)
    print_result(result)
    if args.report:
        write_report(result, args.report)

    return EXIT_SUCCESS if result.success else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
