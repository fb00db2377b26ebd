# ============================================================================
# KLEUREN PIPELINE GRAPH
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Client - Builds the jellyfish -> bft -> kleuren workflow
# PURPOSE: Turn a genome directory into a sealed, runnable workflow
# CREATED: 18 OCT 2026
# ============================================================================
"""
Kleuren Pipeline Graph

For genomes g1..gN found in the genome directory:

    countKmers_<g> -> dumpKmers_<g>      (one pair per genome)
    dumpKmers_* -> listKmerFiles -> buildColoredGraph -> findBubbles
    countSuperKmers -> dumpSuperKmers -> findBubbles

Executable paths, the k-mer size and the other settings reach the commands
only as literal parameter bindings. jellyfish, bft and kleuren are opaque:
the engine only checks exit status and that declared outputs exist.
"""

import logging
import os
from typing import List, Optional, Sequence

from core.config import PipelineConfig
from core.models import Workflow
from worker.filesystem import FileSystem, LocalFileSystem

logger = logging.getLogger(__name__)


COUNT_COMMAND = "{p:jellyfish} count -m {p:k} -s {p:hashSize} -o {o:jfDB} {p:genomes}"
DUMP_COMMAND = "{p:jellyfish} dump -c -o {o:kmerCount} {i:jfDB}"
BFT_COMMAND = "{p:bft} build {p:k} kmers {i:kmerFiles} {o:graph}"
KLEUREN_COMMAND = (
    "{p:kleuren} -g {i:graph} -k {i:superKmers} "
    "-n {p:minColors} -d {p:maxDepth} -o {o:bubbles}"
)


def discover_genomes(
    directory: str,
    pattern: str,
    fs: Optional[FileSystem] = None,
) -> List[str]:
    """
    Absolute paths of `directory/*.pattern`, sorted.

    Args:
        directory: Genome directory (relative or absolute)
        pattern: File extension without the leading dot

    Raises:
        FileNotFoundError: If directory does not exist
    """
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Genome directory not found: {directory}")
    fs = fs or LocalFileSystem()
    paths = fs.glob(directory, f"*.{pattern}")
    logger.info(f"Found {len(paths)} genomes in {directory} matching *.{pattern}")
    return paths


def genome_stem(path: str, pattern: str) -> str:
    """'/data/genome1.fasta' -> 'genome1'."""
    name = os.path.basename(path)
    suffix = f".{pattern}"
    return name[: -len(suffix)] if name.endswith(suffix) else name


def build_kleuren_workflow(config: PipelineConfig, genome_paths: Sequence[str]) -> Workflow:
    """
    Build and seal the kleuren workflow.

    Args:
        config: Validated pipeline settings
        genome_paths: Genome files, usually from discover_genomes()

    Raises:
        ValueError: Invalid config or no genomes
    """
    errors = config.validate()
    if errors:
        raise ValueError(f"Invalid pipeline configuration: {errors}")
    if not genome_paths:
        raise ValueError(
            f"No genome files matching *.{config.genome_pattern} in {config.genome_dir}"
        )

    out_dir = config.resolved_output_dir
    k = config.kmer_size
    wf = Workflow(name="kleuren", description=f"kleuren pipeline, k={k}, {len(genome_paths)} genomes")

    # Per-genome k-mer counts
    dumps = []
    for genome in genome_paths:
        stem = genome_stem(genome, config.genome_pattern)
        base = os.path.basename(genome)

        count = wf.new_process(f"countKmers_{stem}", COUNT_COMMAND)
        count.set_output("jfDB", os.path.join(out_dir, f"{base}.{k}.jf"))
        _bind_jellyfish(count, config, config.single_hash_size, genome)

        dump = wf.new_process(f"dumpKmers_{stem}", DUMP_COMMAND)
        dump.set_output("kmerCount", "{i:jfDB|%.jf}.kmers.txt")
        dump.bind_param_literal("jellyfish", config.jellyfish_path)
        dump.bind_input("jfDB", count, "jfDB")
        dumps.append(dump)

    # Super-set of all k-mers across genomes
    count_super = wf.new_process("countSuperKmers", COUNT_COMMAND)
    count_super.set_output("jfDB", os.path.join(out_dir, f"super.kmers.{k}.jf"))
    _bind_jellyfish(count_super, config, config.multi_hash_size, " ".join(genome_paths))

    dump_super = wf.new_process("dumpSuperKmers", DUMP_COMMAND)
    dump_super.set_output("kmerCount", "{i:jfDB|%.jf}.txt")
    dump_super.bind_param_literal("jellyfish", config.jellyfish_path)
    dump_super.bind_input("jfDB", count_super, "jfDB")

    # bft reads the per-genome k-mer files from a list file
    slots = " ".join(f"'{{p:kmers_{i}}}'" for i in range(len(dumps)))
    list_files = wf.new_process("listKmerFiles", f"printf '%s\\n' {slots} > {{o:list}}")
    list_files.set_output("list", os.path.join(out_dir, f"kmer_files.{k}.txt"))
    for i, dump in enumerate(dumps):
        list_files.bind_param_from_output(f"kmers_{i}", dump, "kmerCount")

    build_graph = wf.new_process("buildColoredGraph", BFT_COMMAND)
    build_graph.set_output("graph", os.path.join(out_dir, f"graph.{k}.bft"))
    build_graph.bind_param_literal("bft", config.bft_path)
    build_graph.bind_param_literal("k", k)
    build_graph.bind_input("kmerFiles", list_files, "list")

    find_bubbles = wf.new_process("findBubbles", KLEUREN_COMMAND)
    find_bubbles.set_output("bubbles", os.path.join(out_dir, f"bubbles.{k}.txt"))
    find_bubbles.bind_param_literal("kleuren", config.kleuren_path)
    find_bubbles.bind_param_literal("minColors", config.min_colors)
    find_bubbles.bind_param_literal("maxDepth", config.max_depth)
    find_bubbles.bind_input("graph", build_graph, "graph")
    find_bubbles.bind_input("superKmers", dump_super, "kmerCount")

    return wf.seal()


def _bind_jellyfish(process, config: PipelineConfig, hash_size: str, genomes: str) -> None:
    process.bind_param_literal("jellyfish", config.jellyfish_path)
    process.bind_param_literal("k", config.kmer_size)
    process.bind_param_literal("hashSize", hash_size)
    process.bind_param_literal("genomes", genomes)


__all__ = [
    "discover_genomes",
    "genome_stem",
    "build_kleuren_workflow",
]
