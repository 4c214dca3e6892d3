"""Exceptions raised by the Paillier public-key method."""


class PaillierError(Exception):
    """Base class for every error raised by this package."""


class AllocationError(PaillierError, MemoryError):
    pass


class BindingError(PaillierError):
    """A freshly generated key could not be attached to its key handle."""


class GenerationError(PaillierError):
    pass


class BufferTooSmall(PaillierError, ValueError):
    def __init__(self, capacity: int, required: int):
        super().__init__(f"output buffer holds {capacity} bytes, {required} required")
        self.capacity = capacity
        self.required = required


class EncodingError(PaillierError, ValueError):
    pass


class EncryptionError(PaillierError):
    pass


class DecryptionError(PaillierError):
    pass


class KeySizeTooSmall(PaillierError, ValueError):
    def __init__(self, bits: int, minimum: int):
        super().__init__(f"key size {bits} is below the minimum of {minimum} bits")
        self.bits = bits
        self.minimum = minimum


class ValueMissing(PaillierError, ValueError):
    pass


class UnsupportedOperation(PaillierError):
    pass


class InternalError(PaillierError):
    pass


class NoKeyError(PaillierError):
    """The operation needs a key that the context does not hold."""
