"""Algorithm-agnostic public-key plumbing.

A :class:`PkeyMethod` implements one scheme's operations. Methods are
looked up by identifier in a :class:`MethodRegistry` and driven through a
:class:`PkeyContext`, which holds the method's private parameter state in
``data`` and the caller's :class:`KeyHandle` in ``pkey``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import logging

from paillier_pkey.errors import BindingError, NoKeyError, UnsupportedOperation

logger = logging.getLogger(__name__)


class KeyHandle:
    """Caller-owned holder for exactly one key of one algorithm."""

    def __init__(self, pkey_id: Optional[int] = None):
        self.pkey_id = pkey_id
        self._key = None

    def assign(self, pkey_id: int, key) -> None:
        """Take ownership of *key*, revoking it from any previous handle."""
        if self.pkey_id is not None and self.pkey_id != pkey_id:
            raise BindingError(f"handle of type {self.pkey_id} cannot hold a key of type {pkey_id}")
        if key is None:
            raise BindingError("no key to assign")

        previous = getattr(key, 'owner', None)
        if previous is not None and previous is not self:
            logger.debug("moving key of type %d to a new handle", pkey_id)
            previous._key = None
        if self._key is not None and self._key is not key:
            self._key.owner = None

        self.pkey_id = pkey_id
        self._key = key
        key.owner = self

    def get0(self, pkey_id: int):
        """The held key if it is of type *pkey_id*, otherwise None."""
        if self.pkey_id != pkey_id:
            return None
        return self._key

    def free(self) -> None:
        if self._key is not None:
            self._key.owner = None
            self._key.clear()
        self._key = None


class PkeyMethod(ABC):
    """Operations one public-key scheme supplies to :class:`PkeyContext`."""

    pkey_id: int
    flags: int = 0

    @abstractmethod
    def init(self, ctx: 'PkeyContext') -> None: ...

    @abstractmethod
    def copy(self, dst: 'PkeyContext', src: 'PkeyContext') -> None: ...

    @abstractmethod
    def cleanup(self, ctx: 'PkeyContext') -> None: ...

    @abstractmethod
    def keygen(self, ctx: 'PkeyContext', pkey: KeyHandle) -> None: ...

    @abstractmethod
    def encrypt(self, ctx: 'PkeyContext', out: Optional[bytearray], data: bytes) -> int: ...

    @abstractmethod
    def decrypt(self, ctx: 'PkeyContext', out: Optional[bytearray], data: bytes) -> int: ...

    @abstractmethod
    def ctrl(self, ctx: 'PkeyContext', ctrl_type: int, p1: int, p2: Any = None) -> None: ...

    @abstractmethod
    def ctrl_str(self, ctx: 'PkeyContext', name: str, value: Optional[str]) -> None: ...


class MethodRegistry:
    def __init__(self):
        self._methods: Dict[int, PkeyMethod] = {}

    def register(self, method: PkeyMethod) -> None:
        if method.pkey_id in self._methods:
            raise ValueError(f"a method for key type {method.pkey_id} is already registered")
        self._methods[method.pkey_id] = method

    def find(self, pkey_id: int) -> PkeyMethod:
        try:
            return self._methods[pkey_id]
        except KeyError:
            raise UnsupportedOperation(f"no method registered for key type {pkey_id}") from None

    def __contains__(self, pkey_id: int) -> bool:
        return pkey_id in self._methods


class PkeyContext:
    """Session binding a method, its parameter state and a key handle.

    Build one with :meth:`new` or :meth:`from_id`; the plain constructor
    does not run the method's ``init``.
    """

    def __init__(self, method: PkeyMethod, pkey: Optional[KeyHandle] = None):
        self.method = method
        self.pkey = pkey
        self.data: Any = None

    @classmethod
    def new(cls, method: PkeyMethod, pkey: Optional[KeyHandle] = None) -> 'PkeyContext':
        ctx = cls(method, pkey)
        method.init(ctx)
        return ctx

    @classmethod
    def from_id(cls, pkey_id: int, registry: MethodRegistry,
                pkey: Optional[KeyHandle] = None) -> 'PkeyContext':
        return cls.new(registry.find(pkey_id), pkey)

    def dup(self, include_key: bool = False) -> 'PkeyContext':
        """Copy of this context's parameters.

        With *include_key* the copy also gets its own handle holding a
        deep copy of this context's key.
        """
        dst = PkeyContext(self.method)
        self.method.copy(dst, self)
        if include_key:
            key = self.get0_key()
            if key is None:
                raise NoKeyError("source context holds no key to copy")
            dst.assign_key(key.copy())
        return dst

    def free(self) -> None:
        self.method.cleanup(self)
        if self.pkey is not None:
            self.pkey.free()
            self.pkey = None

    def keygen(self) -> KeyHandle:
        if self.pkey is None:
            self.pkey = KeyHandle(self.method.pkey_id)
        self.method.keygen(self, self.pkey)
        return self.pkey

    def assign_key(self, key) -> None:
        """Install an existing key into this context's handle."""
        if self.pkey is None:
            self.pkey = KeyHandle(self.method.pkey_id)
        self.pkey.assign(self.method.pkey_id, key)

    def get0_key(self):
        if self.pkey is None:
            return None
        return self.pkey.get0(self.method.pkey_id)

    def encrypt(self, data: bytes, out: Optional[bytearray] = None) -> int:
        """Encrypt *data* into *out*, or return the maximum size when *out* is None."""
        return self.method.encrypt(self, out, data)

    def decrypt(self, data: bytes, out: Optional[bytearray] = None) -> int:
        """Decrypt *data* into *out*, or return the maximum size when *out* is None."""
        return self.method.decrypt(self, out, data)

    def encrypt_bytes(self, data: bytes) -> bytes:
        out = bytearray(self.encrypt(data))
        written = self.encrypt(data, out)
        return bytes(out[:written])

    def decrypt_bytes(self, data: bytes) -> bytes:
        out = bytearray(self.decrypt(data))
        written = self.decrypt(data, out)
        return bytes(out[:written])

    def ctrl(self, ctrl_type: int, p1: int = 0, p2: Any = None) -> None:
        self.method.ctrl(self, ctrl_type, p1, p2)

    def ctrl_str(self, name: str, value: Optional[str]) -> None:
        self.method.ctrl_str(self, name, value)
