"""
DDH-based Functional Encryption for Inner Products

Single-input scheme: an authority holds a master secret key s in Z_Q^L and
publishes h_i = G^{s_i}. Anyone can encrypt a vector x in [0, B)^L; the holder
of the function key <s, y> for a weight vector y learns <x, y> and nothing
else about x.

    encrypt:     c0 = G^r,  c_i = G^{x_i} * h_i^r
    derive_key:  k  = <s, y> mod Q
    decrypt:     prod c_i^{y_i} / c0^k = G^{<x, y>}  ->  bounded discrete log
"""

import operator
import threading
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from dlog import BabyStepGiantStep
from fe_config import configure_logger
from fe_errors import (
    DecryptionFailed,
    DimensionMismatch,
    DiscreteLogNotFound,
    OutOfBound,
)
from group_params import GroupParams, default_rng, generate_group_params, sample_uniform

ddh_logger = configure_logger("ddh_fe")


@dataclass(frozen=True)
class MasterSecretKey:
    """Secret exponents s_1..s_L, one per coordinate."""
    values: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class MasterPublicKey:
    """Public elements G^{s_i} mod P."""
    values: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class Ciphertext:
    """Blinding element c0 = G^r followed by one element per coordinate."""
    c0: int
    cs: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.cs)


def as_vector(values: Sequence[int], length: int, name: str) -> Tuple[int, ...]:
    """
    Convert a sequence to a tuple of Python ints of the required length.

    Raises:
        DimensionMismatch: if the length differs
        TypeError: if an entry is not an integer
    """
    vector = tuple(operator.index(v) for v in values)
    if len(vector) != length:
        ddh_logger.warning(f"Rejected {name}: length {len(vector)}, expected {length}")
        raise DimensionMismatch(f"{name} has length {len(vector)}, expected {length}")
    return vector


class DDH:
    """
    Single-input DDH inner-product scheme bound to one GroupParams instance.

    The instance carries no key material; keys are returned to the caller.
    """

    def __init__(self, params: GroupParams, rng=None, validate: bool = True):
        """
        Args:
            params: Group parameters
            rng: Random source for keys and ephemeral exponents
            validate: Re-check the parameter invariants
        """
        if validate:
            params.validate()
        self.params = params
        self.rng = rng if rng is not None else default_rng()

        self._solver: Optional[BabyStepGiantStep] = None
        self._solver_lock = threading.Lock()

        ddh_logger.debug(
            f"DDH scheme initialized: L={params.vec_len}, B={params.bound}, "
            f"{params.modulus_length}-bit modulus"
        )

    @classmethod
    def new(cls, vec_len: int, modulus_length: int, bound: int, rng=None) -> "DDH":
        """Generate fresh group parameters and return a scheme using them."""
        params = generate_group_params(vec_len, modulus_length, bound, rng=rng)
        return cls(params, rng=rng, validate=False)

    @property
    def solver(self) -> BabyStepGiantStep:
        if self._solver is None:
            with self._solver_lock:
                if self._solver is None:
                    self._solver = BabyStepGiantStep(
                        self.params.g, self.params.p, self.params.q,
                        self.params.max_inner_product,
                    )
        return self._solver

    def generate_master_keys(self) -> Tuple[MasterSecretKey, MasterPublicKey]:
        """
        Draw L secret exponents uniformly from [0, Q) and their public images.

        Raises:
            EntropyFailure: if the random source fails
        """
        params = self.params
        secret = tuple(sample_uniform(self.rng, params.q) for _ in range(params.vec_len))
        public = tuple(pow(params.g, s, params.p) for s in secret)

        ddh_logger.info(f"Generated DDH master key pair for L={params.vec_len}")
        return MasterSecretKey(secret), MasterPublicKey(public)

    def check_plaintext(self, x: Sequence[int]) -> Tuple[int, ...]:
        """
        Validate a plaintext vector against L and B.

        Raises:
            DimensionMismatch: if len(x) != L
            OutOfBound: if a coordinate is outside [0, B)
        """
        vector = as_vector(x, self.params.vec_len, "x")
        for i, xi in enumerate(vector):
            if not 0 <= xi < self.params.bound:
                ddh_logger.warning(f"Rejected plaintext: coordinate {i} outside [0, {self.params.bound})")
                raise OutOfBound(
                    f"x[{i}] = {xi} is outside [0, {self.params.bound})"
                )
        return vector

    def encrypt_exponents(self, exponents: Sequence[int], mpk: MasterPublicKey) -> Ciphertext:
        """
        Encrypt already validated exponents e_i as (G^r, G^{e_i} * h_i^r).

        Raises:
            DimensionMismatch: if the public key length differs from L
            EntropyFailure: if the random source fails
        """
        params = self.params
        if len(mpk) != params.vec_len:
            ddh_logger.warning(f"Rejected public key of length {len(mpk)}, expected {params.vec_len}")
            raise DimensionMismatch(f"Public key has length {len(mpk)}, expected {params.vec_len}")

        r = sample_uniform(self.rng, params.q)
        c0 = pow(params.g, r, params.p)
        cs = tuple(
            (pow(params.g, e % params.q, params.p) * pow(h, r, params.p)) % params.p
            for e, h in zip(exponents, mpk.values)
        )
        return Ciphertext(c0=c0, cs=cs)

    def encrypt(self, x: Sequence[int], mpk: MasterPublicKey) -> Ciphertext:
        """
        Encrypt x in [0, B)^L under the master public key.

        Every call draws a fresh ephemeral exponent.

        Raises:
            DimensionMismatch: if len(x) or len(mpk) != L
            OutOfBound: if a coordinate is outside [0, B)
            EntropyFailure: if the random source fails
        """
        vector = self.check_plaintext(x)
        ciphertext = self.encrypt_exponents(vector, mpk)
        ddh_logger.debug(f"Encrypted {len(vector)}-coordinate vector")
        return ciphertext

    def derive_key(self, msk: MasterSecretKey, y: Sequence[int]) -> int:
        """
        Function key <msk, y> mod Q for the weight vector y.

        y is not bound-checked here. Weights large enough to push <x, y>
        past L * B^2 make decryption fail.

        Raises:
            DimensionMismatch: if len(y) or len(msk) != L
        """
        weights = as_vector(y, self.params.vec_len, "y")
        if len(msk) != self.params.vec_len:
            ddh_logger.warning(f"Rejected secret key of length {len(msk)}, expected {self.params.vec_len}")
            raise DimensionMismatch(f"Secret key has length {len(msk)}, expected {self.params.vec_len}")
        return sum(s * w for s, w in zip(msk.values, weights)) % self.params.q

    def blinded_product(self, ciphertext: Ciphertext, key: int, y: Sequence[int]) -> int:
        """
        Compute prod c_i^{y_i} / c0^key, i.e. G^{<x, y>} for a matching key.

        Raises:
            DimensionMismatch: if the ciphertext or y length differs from L
        """
        params = self.params
        weights = as_vector(y, params.vec_len, "y")
        if len(ciphertext) != params.vec_len:
            ddh_logger.warning(f"Rejected ciphertext with {len(ciphertext)} coordinates, expected {params.vec_len}")
            raise DimensionMismatch(
                f"Ciphertext has {len(ciphertext)} coordinates, expected {params.vec_len}"
            )

        num = 1
        for c, w in zip(ciphertext.cs, weights):
            num = (num * pow(c, w % params.q, params.p)) % params.p
        denom = pow(ciphertext.c0, key % params.q, params.p)
        return (num * params.inverse(denom)) % params.p

    def decrypt(self, ciphertext: Ciphertext, key: int, y: Sequence[int]) -> int:
        """
        Recover <x, y> from a ciphertext and the function key derived for y.

        Raises:
            DimensionMismatch: on shape errors
            DecryptionFailed: if no value in [0, L * B^2) matches, which means
                a wrong key, wrong weights or a corrupted ciphertext
        """
        target = self.blinded_product(ciphertext, key, y)
        try:
            result = self.solver.solve(target)
        except DiscreteLogNotFound as e:
            ddh_logger.warning("DDH decryption failed: inner product outside the recovery range")
            raise DecryptionFailed(
                f"Inner product not recoverable within [0, {self.params.max_inner_product})"
            ) from e

        ddh_logger.debug("DDH decryption succeeded")
        return result


class DDHWrapper:
    """
    Convenience wrapper holding one DDH scheme together with its key pair.
    """

    def __init__(self, scheme: DDH):
        self.scheme = scheme
        self.msk, self.mpk = scheme.generate_master_keys()

    @classmethod
    def new(cls, vec_len: int, modulus_length: int, bound: int, rng=None) -> "DDHWrapper":
        return cls(DDH.new(vec_len, modulus_length, bound, rng=rng))

    @property
    def params(self) -> GroupParams:
        return self.scheme.params

    def encrypt(self, x: Sequence[int]) -> Ciphertext:
        return self.scheme.encrypt(x, self.mpk)

    def derive_key(self, y: Sequence[int]) -> int:
        return self.scheme.derive_key(self.msk, y)

    def decrypt(self, ciphertext: Ciphertext, key: int, y: Sequence[int]) -> int:
        return self.scheme.decrypt(ciphertext, key, y)

    def export_keys(self) -> Tuple[str, str]:
        """Secret and public key as decimal values joined by '-'."""
        return (
            "-".join(str(v) for v in self.msk.values),
            "-".join(str(v) for v in self.mpk.values),
        )

    def params_summary(self) -> str:
        """Human-readable listing of the parameters the scheme was built with."""
        params = self.params
        return (
            "DDHWrapper (s-IND-CPA):\n"
            f"\tL: {params.vec_len}\n"
            f"\tG: {params.g}\n"
            f"\tP: {params.p}\n"
            f"\tQ: {params.q}\n"
            f"\tBound: {params.bound}\n"
        )
