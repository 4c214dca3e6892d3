"""Paillier implementation of :class:`~paillier_pkey.pkey.PkeyMethod`.

Parameter state is a :class:`KeyParameters` stored in ``ctx.data``. It is
only ever changed through the control requests handled by
:meth:`PaillierMethod.ctrl` and :meth:`PaillierMethod.ctrl_str`.

Plaintexts and ciphertexts travel as canonical big-endian bytes (see
:mod:`paillier_pkey.bignum`). Encrypt and decrypt follow a two-phase
protocol: called without an output buffer they return the maximum output
size, called with one they check its capacity, write the result to its
start and return the number of bytes written.
"""

from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Any, Optional
import logging
import re

from paillier_pkey.bignum import bin2bn, bn2bin
from paillier_pkey.errors import (
    AllocationError,
    BindingError,
    BufferTooSmall,
    DecryptionError,
    EncodingError,
    EncryptionError,
    GenerationError,
    InternalError,
    KeySizeTooSmall,
    NoKeyError,
    UnsupportedOperation,
    ValueMissing,
)
from paillier_pkey.paillier_encryption import PaillierKey
from paillier_pkey.pkey import KeyHandle, MethodRegistry, PkeyContext, PkeyMethod

logger = logging.getLogger(__name__)

PKEY_PAILLIER = 1227
DEFAULT_KEY_BITS = 4096
PAILLIER_MIN_KEY_BITS = 2048

PKEY_ALG_CTRL = 0x1000


class ControlType(IntEnum):
    KEYGEN_BITS = PKEY_ALG_CTRL + 1


class ControlName(str, Enum):
    BITS = 'bits'


_NAME_TO_CONTROL = {
    ControlName.BITS: ControlType.KEYGEN_BITS,
}

_ATOI = re.compile(r'\s*([+-]?\d+)')


def _atoi(value: str) -> int:
    """Leading integer of *value*, or 0 when there is none."""
    match = _ATOI.match(value)
    return int(match.group(1)) if match else 0


@dataclass(frozen=True)
class KeyParameters:
    bits: int = DEFAULT_KEY_BITS


class PaillierMethod(PkeyMethod):
    pkey_id = PKEY_PAILLIER

    def init(self, ctx: PkeyContext) -> None:
        try:
            ctx.data = KeyParameters()
        except MemoryError as exc:
            raise AllocationError("cannot allocate Paillier parameters") from exc

    def copy(self, dst: PkeyContext, src: PkeyContext) -> None:
        self.init(dst)
        if src.data is None:
            raise InternalError("source context has no Paillier parameters")
        dst.data = replace(src.data)

    def cleanup(self, ctx: PkeyContext) -> None:
        ctx.data = None

    def keygen(self, ctx: PkeyContext, pkey: KeyHandle) -> None:
        params = self._params(ctx)
        try:
            key = PaillierKey()
        except MemoryError as exc:
            raise AllocationError("cannot allocate Paillier key") from exc

        try:
            pkey.assign(self.pkey_id, key)
        except BindingError:
            key.clear()
            raise

        try:
            key.generate_key(params.bits)
        except (ValueError, MemoryError) as exc:
            raise GenerationError(f"cannot generate {params.bits}-bit Paillier key") from exc

    def encrypt(self, ctx: PkeyContext, out: Optional[bytearray], data: bytes) -> int:
        key = self._key(ctx)
        size = key.size()
        if out is None:
            return size
        if len(out) < size:
            raise BufferTooSmall(len(out), size)

        m = self._decode(data)
        try:
            c = key.encrypt(m)
        except ValueError as exc:
            raise EncryptionError(str(exc)) from exc
        finally:
            m = None

        # the ciphertext has no leading zeros
        encoded = bn2bin(c)
        out[:len(encoded)] = encoded
        return len(encoded)

    def decrypt(self, ctx: PkeyContext, out: Optional[bytearray], data: bytes) -> int:
        key = self._key(ctx)
        size = key.size()
        if out is None:
            return size
        if len(out) < size:
            raise BufferTooSmall(len(out), size)

        c = self._decode(data)
        try:
            m = key.decrypt(c)
        except ValueError as exc:
            raise DecryptionError(str(exc)) from exc
        finally:
            c = None

        encoded = bn2bin(m)
        m = None
        out[:len(encoded)] = encoded
        return len(encoded)

    def ctrl(self, ctx: PkeyContext, ctrl_type: int, p1: int, p2: Any = None) -> None:
        if ctrl_type == ControlType.KEYGEN_BITS:
            params = self._params(ctx)
            if p1 < PAILLIER_MIN_KEY_BITS:
                logger.warning("rejected Paillier key size %d", p1)
                raise KeySizeTooSmall(p1, PAILLIER_MIN_KEY_BITS)
            ctx.data = replace(params, bits=p1)
            logger.debug("Paillier key size set to %d bits", p1)
            return
        raise UnsupportedOperation(f"unsupported control request {ctrl_type}")

    def ctrl_str(self, ctx: PkeyContext, name: str, value: Optional[str]) -> None:
        if value is None:
            raise ValueMissing(f"control {name!r} needs a value")
        try:
            control = _NAME_TO_CONTROL[ControlName(name)]
        except ValueError:
            logger.warning("rejected unknown Paillier control %r", name)
            raise UnsupportedOperation(f"unsupported control {name!r}") from None

        if control == ControlType.KEYGEN_BITS:
            self.ctrl(ctx, control, _atoi(value))

    @staticmethod
    def _params(ctx: PkeyContext) -> KeyParameters:
        if ctx.data is None:
            raise InternalError("context has no Paillier parameters")
        return ctx.data

    def _key(self, ctx: PkeyContext) -> PaillierKey:
        key = ctx.get0_key()
        if key is None or key.n is None:
            raise NoKeyError("context holds no usable Paillier key")
        return key

    @staticmethod
    def _decode(data: bytes) -> int:
        try:
            return bin2bn(data)
        except (TypeError, MemoryError) as exc:
            raise EncodingError("cannot decode input as an integer") from exc


def set_paillier_keygen_bits(ctx: PkeyContext, bits: int) -> None:
    ctx.ctrl(ControlType.KEYGEN_BITS, bits)


def register(registry: MethodRegistry) -> PaillierMethod:
    method = PaillierMethod()
    registry.register(method)
    return method
