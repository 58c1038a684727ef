"""
Group Parameter Generation for DDH Functional Encryption

Produces the public description of a prime-order cyclic group in which the
Decisional Diffie-Hellman assumption is believed to hold:

    P = 2Q + 1      safe prime modulus
    Q               prime order of the subgroup of quadratic residues
    G = h^2 mod P   generator of that subgroup

together with the vector length L and the input bound B of the scheme that
will use it. Parameters are immutable once created and may be shared freely
between threads and scheme instances.
"""

import secrets
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives.asymmetric import dh

from fe_config import FEConfig, configure_logger
from fe_errors import EntropyFailure, ParameterError

gp_logger = configure_logger("group_params")

# Smallest modulus accepted; anything shorter leaves no room for a useful bound.
MIN_MODULUS_LENGTH = 16

# From this size on OpenSSL's safe prime generator is used.
OPENSSL_MIN_MODULUS_LENGTH = 512

MILLER_RABIN_ROUNDS = 40

_SMALL_PRIMES = (
    3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71,
    73, 79, 83, 89, 97, 101, 103, 107, 109, 113, 127, 131, 137, 139, 149, 151,
    157, 163, 167, 173, 179, 181, 191, 193, 197, 199, 211, 223, 227, 229, 233,
    239, 241, 251,
)


def default_rng() -> secrets.SystemRandom:
    """Cryptographically secure random source used when callers pass none."""
    return secrets.SystemRandom()


def sample_uniform(rng, upper: int) -> int:
    """
    Draw an integer uniformly from [0, upper).

    Raises:
        EntropyFailure: if the random source cannot deliver randomness
    """
    try:
        return rng.randrange(upper)
    except (OSError, NotImplementedError) as e:
        gp_logger.error(f"Random source failure: {e}")
        raise EntropyFailure(f"Secure random source unavailable: {e}") from e


def is_probable_prime(n: int, rng=None, rounds: int = MILLER_RABIN_ROUNDS) -> bool:
    """
    Miller-Rabin primality test.

    Args:
        n: Candidate
        rng: Random source for the witnesses
        rounds: Number of witnesses to try

    Returns:
        False if n is composite, True if n is prime with overwhelming probability
    """
    if n < 2:
        return False
    if n in (2, 3):
        return True
    if n % 2 == 0:
        return False
    for sp in _SMALL_PRIMES:
        if n == sp:
            return True
        if n % sp == 0:
            return False

    if rng is None:
        rng = default_rng()

    # Write n-1 as d * 2^r
    r = 0
    d = n - 1
    while d % 2 == 0:
        r += 1
        d //= 2

    for _ in range(rounds):
        a = sample_uniform(rng, n - 3) + 2
        x = pow(a, d, n)

        if x == 1 or x == n - 1:
            continue

        for _ in range(r - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False

    return True


def _passes_sieve(q: int) -> bool:
    # Both q and 2q + 1 must avoid every small prime factor.
    for sp in _SMALL_PRIMES:
        if q % sp == 0 or (2 * q + 1) % sp == 0:
            return False
    return True


def _search_safe_prime(bits: int, rng, max_attempts: int) -> int:
    """Find a safe prime of exactly `bits` bits within `max_attempts` candidates."""
    for attempt in range(1, max_attempts + 1):
        try:
            q = rng.getrandbits(bits - 1)
        except (OSError, NotImplementedError) as e:
            gp_logger.error(f"Random source failure during prime search: {e}")
            raise EntropyFailure(f"Secure random source unavailable: {e}") from e
        q |= (1 << (bits - 2)) | 1

        if not _passes_sieve(q):
            continue
        if not is_probable_prime(q, rng):
            continue
        p = 2 * q + 1
        if is_probable_prime(p, rng):
            gp_logger.debug(f"Found {bits}-bit safe prime after {attempt} candidates")
            return p

    raise ParameterError(
        f"No {bits}-bit safe prime found within {max_attempts} candidates"
    )


def _openssl_safe_prime(bits: int) -> int:
    """Safe prime from OpenSSL's Diffie-Hellman parameter generator."""
    try:
        parameters = dh.generate_parameters(generator=2, key_size=bits)
    except ValueError as e:
        raise ParameterError(f"OpenSSL rejected a {bits}-bit DH modulus: {e}") from e
    return parameters.parameter_numbers().p


@dataclass(frozen=True)
class GroupParams:
    """Public parameters shared by every operation of a scheme instance."""
    p: int
    q: int
    g: int
    vec_len: int
    bound: int

    @property
    def max_inner_product(self) -> int:
        """Exclusive upper end L * B^2 of the single-input recovery range."""
        return self.vec_len * self.bound * self.bound

    @property
    def modulus_length(self) -> int:
        return self.p.bit_length()

    def inverse(self, element: int) -> int:
        """Inverse of a group element modulo P."""
        return pow(element, self.p - 2, self.p)

    def validate(self, capacity: int = 1) -> None:
        """
        Re-check every invariant of the parameter set.

        Args:
            capacity: Number of inner products that must fit the recovery
                window together (the number of encryptors for multi-input)

        Raises:
            ParameterError: if any invariant is violated
        """
        if self.vec_len < 1:
            raise ParameterError(f"Vector length must be at least 1, got {self.vec_len}")
        if self.bound < 1:
            raise ParameterError(f"Bound must be at least 1, got {self.bound}")
        if self.q < 2 or (self.p - 1) % self.q != 0:
            raise ParameterError("Q must divide P - 1")
        if not is_probable_prime(self.q, rounds=20) or not is_probable_prime(self.p, rounds=20):
            raise ParameterError("P and Q must both be prime")
        if not 1 < self.g < self.p or pow(self.g, self.q, self.p) != 1:
            raise ParameterError("G must generate the subgroup of order Q")
        if capacity * self.max_inner_product >= self.q:
            raise ParameterError(
                f"{capacity} * L * B^2 = {capacity * self.max_inner_product} "
                f"does not fit below the group order"
            )


def generate_group_params(vec_len: int,
                          modulus_length: int,
                          bound: int,
                          capacity: int = 1,
                          rng=None,
                          max_attempts: Optional[int] = None) -> GroupParams:
    """
    Generate a DDH group suited to vectors of length `vec_len` bounded by `bound`.

    Args:
        vec_len: Vector length L
        modulus_length: Bit length of the modulus P
        bound: Exclusive upper bound B on every input coordinate
        capacity: Number of L-length inner products summed at decryption
        rng: Random source (defaults to the operating system CSPRNG)
        max_attempts: Cap on safe prime candidates tried (FE_MAX_PRIME_ATTEMPTS
            when omitted)

    Returns:
        GroupParams with capacity * L * B^2 < Q

    Raises:
        ParameterError: if the combination is infeasible or the search fails
        EntropyFailure: if the random source fails
    """
    if vec_len < 1:
        raise ParameterError(f"Vector length must be at least 1, got {vec_len}")
    if bound < 1:
        raise ParameterError(f"Bound must be at least 1, got {bound}")
    if capacity < 1:
        raise ParameterError(f"Capacity must be at least 1, got {capacity}")
    if modulus_length < MIN_MODULUS_LENGTH:
        raise ParameterError(
            f"Modulus length must be at least {MIN_MODULUS_LENGTH} bits, got {modulus_length}"
        )

    # Q always has its top bit at position modulus_length - 2.
    window = capacity * vec_len * bound * bound
    if window >= 1 << (modulus_length - 2):
        raise ParameterError(
            f"{capacity} * L * B^2 = {window} does not fit a {modulus_length}-bit modulus"
        )

    if max_attempts is None:
        max_attempts = FEConfig.from_env().max_prime_attempts
    if rng is None:
        rng = default_rng()

    if modulus_length >= OPENSSL_MIN_MODULUS_LENGTH:
        p = _openssl_safe_prime(modulus_length)
    else:
        p = _search_safe_prime(modulus_length, rng, max_attempts)
    q = (p - 1) // 2
    if not is_probable_prime(q, rng):
        raise ParameterError("Generated modulus is not a safe prime")

    while True:
        h = sample_uniform(rng, p - 3) + 2
        g = pow(h, 2, p)
        if g != 1:
            break

    params = GroupParams(p=p, q=q, g=g, vec_len=vec_len, bound=bound)
    gp_logger.info(
        f"Generated {modulus_length}-bit DDH group for L={vec_len}, B={bound}"
    )
    return params
