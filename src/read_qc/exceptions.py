"""
Exceptions raised while reading and processing FASTQ files.

Per-read QC outcomes are never exceptions; they are recorded as a filter
reason on the read. Only conditions that make the whole run meaningless
raise.
"""


class FASTQParseError(Exception):
    """Raised when FASTQ parsing encounters an error."""
    pass


class HeaderParseError(FASTQParseError):
    """Raised when a header line matches none of the known dialects."""

    def __init__(self, header: str):
        self.header = header
        super().__init__(f"Unable to parse sequence header: {header}")


class NoValidRecordsError(FASTQParseError):
    """Raised when no record could be read for training."""
    pass


class EncodingAmbiguousError(FASTQParseError):
    """Raised when phred+33 and phred+64 quality votes are tied."""

    def __init__(self, n_canonical: int, n_legacy: int):
        self.n_canonical = n_canonical
        self.n_legacy = n_legacy
        super().__init__(
            f"Can't determine if quality scale is phred 33 or 64 "
            f"({n_canonical:,} vs {n_legacy:,} votes)"
        )


class RecordError(ValueError):
    """Raised when a read is structurally invalid."""
    pass


class ConfigError(ValueError):
    """Raised for unknown options or out-of-range option values."""
    pass


class BarcodeFileError(ValueError):
    """Raised when a barcode reference file cannot be parsed."""
    pass
