from typing import Optional
import logging
import math
import secrets
import sympy

logger = logging.getLogger(__name__)

# Smallest modulus the prime search can produce with two distinct primes.
MIN_GENERATE_BITS = 16


class PaillierKey:
    """Paillier key material.

    A key starts out empty, is filled exactly once by :meth:`generate_key`
    (or built from an existing modulus with :meth:`from_public`) and is
    not modified afterwards. ``owner`` is the key handle currently holding
    the key, maintained by ``KeyHandle.assign``.
    """

    def __init__(self) -> None:
        self.bits = 0
        self.n: Optional[int] = None
        self.n_squared: Optional[int] = None
        self.g: Optional[int] = None
        self.lambda_n: Optional[int] = None
        self.mu: Optional[int] = None
        self.owner = None

    @classmethod
    def from_public(cls, n: int) -> 'PaillierKey':
        if n < 2:
            raise ValueError("Modulus must be at least 2")
        key = cls()
        key._set_public(n)
        return key

    def _set_public(self, n: int) -> None:
        self.n = n
        self.n_squared = n * n
        self.g = n + 1
        self.bits = n.bit_length()

    def generate_key(self, bits: int) -> None:
        """Generate a key whose modulus is exactly *bits* bits long."""
        if self.n is not None:
            raise ValueError("Key material already generated")
        if bits < MIN_GENERATE_BITS:
            raise ValueError(f"Cannot generate a {bits}-bit modulus")

        logger.debug("generating %d-bit Paillier key", bits)
        p_bits = (bits + 1) // 2
        q_bits = bits // 2
        while True:
            p = self._random_prime(p_bits)
            q = self._random_prime(q_bits)
            n = p * q
            if p != q and math.gcd(n, (p - 1) * (q - 1)) == 1:
                break

        assert n.bit_length() == bits
        self._set_public(n)
        self.lambda_n = math.lcm(p - 1, q - 1)
        self.mu = pow(self._L(pow(self.g, self.lambda_n, self.n_squared)), -1, self.n)
        logger.debug("generated %d-bit Paillier key", bits)

    @staticmethod
    def _random_prime(bits: int) -> int:
        # Primes above sqrt(2) * 2^(bits-1) keep the product at full length.
        low = math.isqrt(1 << (2 * bits - 1)) + 1
        return sympy.randprime(low, 1 << bits)

    def _L(self, x: int) -> int:
        return (x - 1) // self.n

    @property
    def has_private(self) -> bool:
        return self.lambda_n is not None

    def public_key(self) -> 'PaillierKey':
        self._require_public()
        return PaillierKey.from_public(self.n)

    def copy(self) -> 'PaillierKey':
        """Independent copy of the key material, without an owner."""
        key = PaillierKey()
        if self.n is not None:
            key._set_public(self.n)
        key.lambda_n = self.lambda_n
        key.mu = self.mu
        return key

    def clear(self) -> None:
        """Drop every reference to the key material."""
        self.bits = 0
        self.n = self.n_squared = self.g = None
        self.lambda_n = self.mu = None

    def size(self) -> int:
        """Maximum byte length of a ciphertext or plaintext under this key."""
        self._require_public()
        return (self.n_squared.bit_length() + 7) // 8

    def _require_public(self) -> None:
        if self.n is None:
            raise ValueError("Key has no key material")

    def encrypt(self, m: int) -> int:
        self._require_public()
        if not (0 <= m < self.n):
            raise ValueError("Message too large for current key size")

        while True:
            r = secrets.randbelow(self.n - 1) + 1
            if math.gcd(r, self.n) == 1:
                break

        # g = n + 1, so g^m = 1 + m*n mod n^2
        g_m = (1 + m * self.n) % self.n_squared
        return (g_m * pow(r, self.n, self.n_squared)) % self.n_squared

    def decrypt(self, ciphertext: int) -> int:
        self._require_public()
        if not self.has_private:
            raise ValueError("Key has no private component")
        if not (0 < ciphertext < self.n_squared) or math.gcd(ciphertext, self.n) != 1:
            raise ValueError("Invalid ciphertext")

        return (self._L(pow(ciphertext, self.lambda_n, self.n_squared)) * self.mu) % self.n

    def ciphertext_add(self, c1: int, c2: int) -> int:
        self._require_public()
        return (c1 * c2) % self.n_squared

    def ciphertext_add_plaintext(self, c: int, k: int) -> int:
        self._require_public()
        return (c * pow(self.g, k, self.n_squared)) % self.n_squared

    def ciphertext_scalar_mul(self, k: int, c: int) -> int:
        self._require_public()
        return pow(c, k, self.n_squared)


def demo(bits: int = 1024) -> None:
    print("Generating Paillier key...")
    key = PaillierKey()
    key.generate_key(bits)
    print(f"\nModulus ({key.n.bit_length()} bits): {hex(key.n)}")

    message = 42
    cipher = key.encrypt(message)
    print(f"\nEncrypted {message}: {hex(cipher)}")
    print(f"\nDecrypted: {key.decrypt(cipher)}")

    # Test homomorphic properties
    m1, m2 = 30, 12
    c_sum = key.ciphertext_add(key.encrypt(m1), key.encrypt(m2))
    print(f"\nHomomorphic addition: {m1} + {m2} = {key.decrypt(c_sum)}")

    k = 3
    c_mult = key.ciphertext_scalar_mul(k, key.encrypt(m1))
    print(f"\nHomomorphic multiplication: {k} * {m1} = {key.decrypt(c_mult)}")


if __name__ == "__main__":
    demo()
