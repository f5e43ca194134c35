"""
Constants for FASTQ read parsing and quality control.

Contains default QC thresholds, nucleotide alphabets and the fixed sizes
used when sampling the start of a FASTQ file for training.
"""

# Number of records buffered from the start of the input for training
SAMPLE_SIZE = 10_000

# Number of records read by the standalone quality-encoding pre-check
PRECHECK_SAMPLE_SIZE = 5_000

# Line width for Fasta and quality-score output
CHARACTERS_PER_LINE = 80

# QC defaults (used when a stage is called without explicit parameters)
DEFAULT_MINLEN = 20
DEFAULT_MEANQ = 20
DEFAULT_WINSIZE = 5
DEFAULT_LOW_COMPLEXITY = 0.8
DEFAULT_MAXN = 3

# Quality encodings
CANONICAL_OFFSET = 33   # Sanger / Illumina 1.8+
LEGACY_OFFSET = 64      # Illumina 1.3 - 1.7
LEGACY_SHIFT = LEGACY_OFFSET - CANONICAL_OFFSET  # chr(ord(c) - 31)

# ASCII bounds for encoding votes; characters in between are ambiguous
CANONICAL_MAX_ASCII = 66   # ascii < 66 only occurs in phred+33
LEGACY_MIN_ASCII = 74      # ascii > 74 only occurs in phred+64

# Highest phred score accepted by the quality thresholds
MAX_PHRED = 41

# Illumina "read segment quality control indicator" (Q2 in phred+33)
TRIM3_SENTINEL = "#"

# Dinucleotide repeats checked by the low complexity filter, in order
LOW_COMPLEXITY_PATTERNS = ("AA", "TT", "CC", "GG", "CA", "GT", "CT", "GA", "AT", "CG")

# Alphabet used to generate single-substitution barcode variants
BARCODE_VARIANT_ALPHABET = ("A", "T", "C", "G", "N")

# Extended IUPAC alphabet accepted on the sequence line
SEQUENCE_LINE_PATTERN = r"^[ATCGNKMRYSWBVHDX-]*$"

# Printable ASCII accepted on the quality line
QUALITY_LINE_PATTERN = r"^[!-~]*$"

# Input decoding; undecodable bytes become U+FFFD and fail the line patterns
INPUT_ENCODING = "ascii"
INPUT_ERRORS = "replace"

# Value of barcodes_file that selects learning barcodes from the sample
AUTO_BARCODES = "AUTO"

# Outcome key for records that were not filtered
PASS = "pass"

# Filter reasons
POOR_QUALITY = "poor_quality"
TOO_SHORT = "too_short"
TOO_MANY_N = "too_many_N"
LOW_COMPLEXITY = "low_complexity"
TOO_MANY_LOW_QUAL = "too_many_low_qual"
LOW_MEAN_QUAL = "low_mean_qual"
INVALID_BARCODE = "invalid_barcode"
BAD_BARCODE = "bad_barcode"
ERROR = "error"
