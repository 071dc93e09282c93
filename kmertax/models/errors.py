"""Error classes for kmertax."""

class KmerTaxError(Exception):
    """Base class for kmertax exceptions."""
    pass

class TaxonomyError(KmerTaxError):
    """Raised when there's an issue with taxonomy."""
    pass

class MalformedTaxonomyPathError(TaxonomyError):
    """Raised when a taxonomy path has unknown, gapped or out of order ranks."""
    pass

class InvalidParameterError(KmerTaxError):
    """Raised when an index or search parameter is out of range."""
    pass

class OutputExistsError(KmerTaxError):
    """Raised when index files exist and overwriting was not requested."""
    pass

class IndexFormatError(KmerTaxError):
    """Raised when there's an issue with the index files."""
    pass

class IncompatibleIndexVersionError(IndexFormatError):
    """Raised when an index file has an unknown header or format version."""
    pass

class ParameterMismatchError(IndexFormatError):
    """Raised when index k-mer parameters differ from the expected ones."""
    pass

class IndexStateError(KmerTaxError):
    """Raised when an index builder is used after it has been saved."""
    pass

class InputError(KmerTaxError):
    """Raised when there's an issue with input files."""
    pass
