"""
Error taxonomy for the DDH inner-product functional encryption schemes.

Every fallible operation raises one of these to its caller. Nothing in the
core retries or substitutes a default value on failure.
"""


class FunctionalEncryptionError(Exception):
    """Base class for all functional encryption failures."""
    pass


class ParameterError(FunctionalEncryptionError):
    """Group parameters or bounds are infeasible or inconsistent."""
    pass


class DimensionMismatch(FunctionalEncryptionError, ValueError):
    """A vector or matrix shape disagrees with the scheme's L or N."""
    pass


class OutOfBound(FunctionalEncryptionError, ValueError):
    """A plaintext coordinate lies outside [0, B)."""
    pass


class IncompleteInput(FunctionalEncryptionError):
    """Fewer ciphertexts were supplied than there are encryptors."""
    pass


class DecryptionFailed(FunctionalEncryptionError):
    """
    No inner product in the recovery range matches the ciphertext.

    Raised on legitimate misuse: wrong weights, wrong function key or a
    tampered ciphertext.
    """
    pass


class EntropyFailure(FunctionalEncryptionError):
    """The secure random source could not produce randomness."""
    pass


class DiscreteLogNotFound(FunctionalEncryptionError):
    """The bounded discrete-log search exhausted its range."""
    pass


class CodecError(FunctionalEncryptionError, ValueError):
    """A serialized document is malformed."""
    pass


class EpochStateError(FunctionalEncryptionError):
    """A multi-input epoch operation was called in the wrong state."""
    pass
