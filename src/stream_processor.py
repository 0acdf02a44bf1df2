import logging
from functools import partial
from multiprocessing import Pool
from typing import Iterable, Iterator, List, Tuple

from data_structures import FASTQRecord
from fastq_errors import FASTQParseError
from fastq_parser import iter_fastq_records
from parse_state import ParseState

logger = logging.getLogger(__name__)


def process_file_worker(
    job: Tuple[int, str],
    phred_offset: int = 33,
    max_phred: int = 0,
    pacbio: bool = False,
    max_errors: int = -1,
    verbose: bool = False,
) -> Tuple[int, str, List[FASTQRecord], dict]:
    """
    Parse one input file in its own session.
    A file that fails to parse yields no records; its summary carries the error.

    Returns:
        tuple: (job_id, fastq_path, records, summary)
    """
    job_id, fastq_path = job
    state = ParseState.for_platform(phred_offset, max_phred, pacbio)
    try:
        if verbose:
            logger.debug(f"Worker parsing {fastq_path} (job {job_id})")

        records = list(iter_fastq_records(fastq_path, max_errors=max_errors, state=state))
        summary = state.summary()
        summary["error"] = None
        return job_id, fastq_path, records, summary

    except FASTQParseError as e:
        logger.error(f"Rejected {fastq_path} after {state.records_parsed:,} records: {e}")
        summary = state.summary()
        summary["error"] = str(e)
        return job_id, fastq_path, [], summary

    except Exception as e:
        logger.error(f"Error in worker parsing {fastq_path}: {e}", exc_info=True)
        raise


def parse_files_in_parallel(
    fastq_paths: Iterable[str],
    num_workers: int = 1,
    **worker_kwargs,
) -> Iterator[Tuple[int, str, List[FASTQRecord], dict]]:
    """
    Parse independent input files, one engine and one session per file.
    Results come back in input order.
    """
    jobs = list(enumerate(fastq_paths))
    worker_func = partial(process_file_worker, **worker_kwargs)

    if num_workers <= 1 or len(jobs) <= 1:
        for job in jobs:
            yield worker_func(job)
        return

    logger.info(f"Using {num_workers} worker processes for {len(jobs)} files")
    with Pool(processes=num_workers) as pool:
        # chunksize=1 keeps ordering and lets results stream back
        for result in pool.imap(worker_func, jobs, chunksize=1):
            yield result
