import logging
import mmap
import os
from typing import Iterator, List, Optional, Tuple

from data_structures import FASTQRecord
from fastq_errors import FASTQSyntaxError
from fastq_grammar import GrammarEngine
from fastq_tokenizer import FASTQTokenizer
from parse_state import ParseState

logger = logging.getLogger(__name__)


def iter_fastq_records_from_buffer(buffer, state: ParseState, start_index: int = 0,
                                   max_errors: int = -1) -> Iterator[FASTQRecord]:
    """
    Yield records parsed from one buffer within an existing session.

    Syntax errors are logged and skipped by resyncing at the next header.
    max_errors < 0 tolerates any number of them; otherwise the error that
    pushes the count past max_errors is re-raised. Fatal errors always propagate.
    """
    engine = GrammarEngine(FASTQTokenizer(buffer), state, start_index)

    while True:
        try:
            record = engine.parse_record()
        except FASTQSyntaxError as e:
            logger.warning(f"Skipping malformed record: {e}")
            if 0 <= max_errors < state.syntax_errors:
                logger.error(f"Too many syntax errors ({state.syntax_errors}), giving up")
                raise
            engine.resync()
            continue

        if record is None:
            break
        yield record


def parse_fastq_records_from_buffer(buffer: bytes, start_index: int = 0, phred_offset: int = 33,
                                    max_phred: int = 0, pacbio: bool = False, max_errors: int = -1,
                                    state: Optional[ParseState] = None) -> Tuple[List[FASTQRecord], ParseState]:
    """
    Parse every FASTQ record in a buffer.
    Returns (records, state); pass the state back in to continue the same session.
    """
    if state is None:
        state = ParseState.for_platform(phred_offset, max_phred, pacbio)

    records = list(iter_fastq_records_from_buffer(buffer, state, start_index, max_errors))
    logger.debug(f"Parsed {len(records)} records ({state.syntax_errors} syntax errors so far)")
    return records, state


def iter_fastq_records(fastq_path: str, phred_offset: int = 33, max_phred: int = 0, pacbio: bool = False,
                       max_errors: int = -1, state: Optional[ParseState] = None) -> Iterator[FASTQRecord]:
    """
    Memory-map a FASTQ file and yield its records lazily.
    Records own their bytes, so they stay valid after the map is closed.
    """
    if state is None:
        state = ParseState.for_platform(phred_offset, max_phred, pacbio)

    if os.path.getsize(fastq_path) == 0:
        logger.info(f"{fastq_path} is empty")
        return

    with open(fastq_path, "rb") as infile:
        with mmap.mmap(infile.fileno(), 0, access=mmap.ACCESS_READ) as data:
            yield from iter_fastq_records_from_buffer(data, state, max_errors=max_errors)

    logger.info(f"Parsed {state.records_parsed:,} records from {fastq_path}")
