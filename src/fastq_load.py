import argparse
import cProfile
import logging
import pstats
import sys
import time
from io import StringIO

from quality_processing import SUPPORTED_PHRED_OFFSETS
from record_writer import summarize_records, write_records_tsv
from stream_processor import parse_files_in_parallel

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_fastq_files(input_paths, output_path=None, phred_offset=33, max_phred=0, pacbio=False,
                     max_errors=-1, summary=True, num_workers=1, verbose=False) -> int:
    """
    Parse every input in its own session and optionally write records to a TSV file.
    Returns the number of inputs that were rejected.
    """
    rejected = 0
    total_records = 0
    wrote_header = False

    for job_id, fastq_path, records, state_summary in parse_files_in_parallel(
        input_paths,
        num_workers=num_workers,
        phred_offset=phred_offset,
        max_phred=max_phred,
        pacbio=pacbio,
        max_errors=max_errors,
        verbose=verbose,
    ):
        if state_summary["error"] is not None:
            rejected += 1
            logger.error(f"[{job_id}] {fastq_path}: {state_summary['error']}")
            continue

        if state_summary["syntax_errors"]:
            logger.warning(f"[{job_id}] {fastq_path}: skipped {state_summary['syntax_errors']} malformed records")

        if output_path is not None and records:
            write_records_tsv(records, output_path, append=wrote_header)
            wrote_header = True

        if summary:
            stats = summarize_records(records, phred_offset)
            logger.info(f"[{job_id}] {fastq_path}: {stats['records']:,} records, "
                        f"read numbers {stats['read_numbers']}, "
                        f"{stats['low_quality']:,} low quality, "
                        f"{stats['colorspace']:,} colorspace, "
                        f"{stats['with_spot_group']:,} with spot group, "
                        f"mean phred {stats['mean_phred']}")
            if state_summary["secondary_read_number"]:
                logger.info(f"[{job_id}] secondary read number: {state_summary['secondary_read_number']}")

        total_records += len(records)

    logger.info(f"Total records parsed: {total_records:,}")
    if output_path is not None:
        logger.info(f"Records saved to: {output_path}")
    return rejected


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Parse FASTQ files into spot records (legacy Illumina, Casava 1.8 and PacBio deflines).",
        formatter_class=argparse.RawTextHelpFormatter,
    )

    # Positional Arguments
    parser.add_argument("input_paths", metavar="FILE", nargs="+", help="Path(s) of .fastq files")
    parser.add_argument("-o", "--output", dest="output_path", metavar="FILE", default=None,
                        help="Write parsed records as TSV [null]")

    # Quality Group
    quality_group = parser.add_argument_group("QUALITY VALIDATION")
    quality_group.add_argument("--phred_off", type=int, default=33, metavar="INT",
                               choices=list(SUPPORTED_PHRED_OFFSETS),
                               help="Phred quality offset, 0 disables validation {0, 33, 64} [33]")
    quality_group.add_argument("--max_phred", type=int, default=0, metavar="INT",
                               help="Override the highest valid quality character code, 0 keeps the default [0]")

    # Platform Group
    platform_group = parser.add_argument_group("PLATFORM")
    platform_group.add_argument("--pacbio", type=int, default=0, metavar="INT", choices=[0, 1],
                                help="PacBio names: keep trailing /digits in the spot name (0/1) [0]")

    # Error Group
    error_group = parser.add_argument_group("ERRORS")
    error_group.add_argument("--max_err", type=int, default=-1, metavar="INT",
                             help="Malformed records tolerated per file before rejecting it, -1 for unlimited [-1]")

    # Output Group
    output_group = parser.add_argument_group("OUTPUT")
    output_group.add_argument("--summary", type=int, default=1, metavar="INT", choices=[0, 1],
                              help="Log a per-file summary (0/1) [1]")

    # Performance Group
    perf_group = parser.add_argument_group("PERFORMANCE & PARALLELIZATION")
    perf_group.add_argument("--workers", type=int, default=1, metavar="INT",
                            help="Number of parallel worker processes, one file each [1]")
    perf_group.add_argument("--verbose", type=int, default=0, metavar="INT", choices=[0, 1],
                            help="Enable verbose logging (0/1) [0]")
    perf_group.add_argument("--profile", type=int, default=0, metavar="INT", choices=[0, 1],
                            help="Enable cProfile profiling (0/1) [0]")

    args = parser.parse_args(argv)

    if args.verbose == 1:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(logging.INFO)

    if args.max_phred and args.phred_off == 0:
        logger.warning("--max_phred has no effect with --phred_off 0")

    start_time = time.perf_counter()

    profiler = None
    if args.profile == 1:
        profiler = cProfile.Profile()
        profiler.enable()
        logger.info("Profiling enabled...")

    try:
        rejected = load_fastq_files(
            args.input_paths,
            output_path=args.output_path,
            phred_offset=args.phred_off,
            max_phred=args.max_phred,
            pacbio=(args.pacbio == 1),
            max_errors=args.max_err,
            summary=(args.summary == 1),
            num_workers=args.workers,
            verbose=(args.verbose == 1),
        )
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    if profiler is not None:
        profiler.disable()
        s = StringIO()
        ps = pstats.Stats(profiler, stream=s).sort_stats("cumulative")
        ps.print_stats(20)
        print("\n" + "=" * 80)
        print("Profiling Results:")
        print("=" * 80)
        print(s.getvalue())

    end_time = time.perf_counter()
    logger.info(f"Task completed in {end_time - start_time:.4f} seconds")

    return 1 if rejected else 0


if __name__ == "__main__":
    sys.exit(main())
