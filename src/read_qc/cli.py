"""
Command-line interface for FASTQ read QC.
"""

import argparse
import logging
import sys

from .fastq_db import ReadStream
from .quality import detect_phred_offset_file

logger = logging.getLogger(__name__)

# CLI flag -> ReadStream option
_QC_OPTIONS = (
    'trim3',
    'trimN',
    'winsize',
    'meanq',
    'minlen',
    'maxn',
    'low_complexity',
    'low_q',
    'max_num_low_q',
    'min_mean_q',
    'roche_mid_len',
    'barcodes_file',
    'barcodes_seq_col',
    'barcodes_label_col',
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Trim and filter FASTQ reads; normalizes quality encoding to phred+33'
    )

    parser.add_argument(
        '-i', '--input',
        default=None,
        help='Input FASTQ (.gz/.bz2 accepted); standard input if omitted',
    )
    parser.add_argument(
        '-o', '--output',
        default=None,
        help='Output FASTQ; standard output if omitted',
    )
    parser.add_argument(
        '--fasta',
        default=None,
        help='Also write passing reads as Fasta to this file',
    )
    parser.add_argument(
        '--qual',
        default=None,
        help='Also write quality scores to this file',
    )
    parser.add_argument(
        '--sample_out',
        default=None,
        help='Write the processed training sample to this file',
    )
    parser.add_argument(
        '--sample_size',
        type=int,
        default=10_000,
        help='Number of reads buffered for training',
    )
    parser.add_argument(
        '--results_path',
        default=None,
        help='Directory for QC and barcode summaries',
    )
    parser.add_argument(
        '--format',
        choices=['excel', 'csv'],
        default='csv',
        help='Summary format',
    )
    parser.add_argument(
        '--check_encoding',
        action='store_true',
        help='Only report the quality encoding (33 or 64) of the input and exit',
    )
    parser.add_argument(
        '-d', '--debug',
        action='store_true',
        help='Enable debug logging',
    )

    qc = parser.add_argument_group('quality control')
    qc.add_argument('--trim3', action='store_true', default=None,
                    help="Trim trailing Q2 ('#') bases")
    qc.add_argument('--trimN', action='store_true', default=None,
                    help='Trim leading and trailing Ns')
    qc.add_argument('--winsize', type=int, default=None,
                    help='Sliding window size for end trimming')
    qc.add_argument('--meanq', type=float, default=None,
                    help='Minimum mean window quality for end trimming')
    qc.add_argument('--minlen', type=int, default=None,
                    help='Minimum read length')
    qc.add_argument('--maxn', type=int, default=None,
                    help='Maximum number of Ns')
    qc.add_argument('--low_complexity', type=float, default=None,
                    help='Filter reads with this fraction of di-nucleotide repeats')
    qc.add_argument('--low_q', type=int, default=None,
                    help='Low quality score threshold')
    qc.add_argument('--max_num_low_q', type=int, default=None,
                    help='Maximum number of bases below --low_q')
    qc.add_argument('--min_mean_q', type=float, default=None,
                    help='Minimum mean read quality')
    qc.add_argument('--roche_mid_len', type=int, default=None,
                    help='Length of the leading Roche/454 MID')

    bc = parser.add_argument_group('molecular barcodes')
    bc.add_argument('--barcodes_file', default=None,
                    help="Barcode reference file (tabular or Fasta), or 'auto' to learn")
    bc.add_argument('--barcodes_seq_col', type=int, default=None,
                    help='1-based barcode sequence column')
    bc.add_argument('--barcodes_label_col', type=int, default=None,
                    help='1-based barcode label column')
    return parser


def main(argv=None):
    """Command-line interface for ReadStream."""
    args = build_parser().parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    if args.check_encoding:
        if args.input is None:
            logger.error("--check_encoding requires --input")
            return 2
        print(detect_phred_offset_file(args.input))
        return 0

    options = {name: getattr(args, name) for name in _QC_OPTIONS}

    out = open(args.output, 'w') if args.output else sys.stdout
    fasta_out = open(args.fasta, 'w') if args.fasta else None
    qual_out = open(args.qual, 'w') if args.qual else None
    try:
        with ReadStream(args.input, sample_size=args.sample_size, **options) as stream:
            if args.sample_out:
                n = stream.write_sample(args.sample_out)
                logger.info(f"Wrote {n:,} sample reads to {args.sample_out}")

            for read in stream:
                out.write(read.to_fastq())
                if fasta_out is not None:
                    fasta_out.write(read.to_fasta())
                if qual_out is not None:
                    qual_out.write(read.to_qual())

            if args.results_path:
                stream.serialize(args.results_path, format=args.format)
            if args.output:
                stream.print_summary()
    finally:
        for handle in (out, fasta_out, qual_out):
            if handle is not None and handle is not sys.stdout:
                handle.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
