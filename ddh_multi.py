"""
Multi-Input DDH Functional Encryption for Inner Products

N encryptors ("slots") each hold their own slice of the public key and a
one-time-pad vector handed out by the authority. They encrypt independently,
never sharing randomness. Decryption needs all N ciphertexts, in slot order,
plus a function key derived for the full N x L weight matrix Y, and reveals
only sum_i <x_i, Y_i>.

Slot i encrypts  c_{i,j} = G^{x_{i,j} + u_{i,j}} * h_{i,j}^{r_i},  c0_i = G^{r_i}
The key is       k_i = <s_i, Y_i> mod Q  (per slot),  z = -sum_i <u_i, Y_i> mod Q
so that          prod_i (prod_j c_{i,j}^{Y_{i,j}} / c0_i^{k_i}) * G^z = G^{sum_i <x_i, Y_i>}
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from ddh_fe import DDH, Ciphertext, MasterPublicKey, MasterSecretKey, as_vector
from dlog import BabyStepGiantStep
from fe_config import configure_logger
from fe_errors import (
    DecryptionFailed,
    DimensionMismatch,
    DiscreteLogNotFound,
    EpochStateError,
    IncompleteInput,
    ParameterError,
)
from group_params import GroupParams, default_rng, generate_group_params, sample_uniform

multi_logger = configure_logger("ddh_multi")


@dataclass(frozen=True)
class MultiMasterSecretKey:
    """Per-slot secret keys and one-time-pad vectors; held by the authority only."""
    msks: Tuple[MasterSecretKey, ...]
    otp: Tuple[Tuple[int, ...], ...]

    def __len__(self) -> int:
        return len(self.msks)


@dataclass(frozen=True)
class MultiMasterPublicKey:
    """Per-slot public keys; slot i only needs mpks[i]."""
    mpks: Tuple[MasterPublicKey, ...]

    def __len__(self) -> int:
        return len(self.mpks)

    def __getitem__(self, slot: int) -> MasterPublicKey:
        return self.mpks[slot]


@dataclass(frozen=True)
class MultiFunctionKey:
    """Per-slot key shares plus the aggregated one-time-pad correction."""
    keys: Tuple[int, ...]
    otp_key: int

    def __len__(self) -> int:
        return len(self.keys)


class DDHMultiClient:
    """
    One encryptor of the multi-input scheme.

    Holds no state beyond the public parameters and its random source, so
    clients can run on separate machines or threads.
    """

    def __init__(self, params: GroupParams, rng=None):
        self.scheme = DDH(params, rng=rng, validate=False)

    @property
    def params(self) -> GroupParams:
        return self.scheme.params

    def encrypt(self, x: Sequence[int], mpk: MasterPublicKey, otp: Sequence[int]) -> Ciphertext:
        """
        Encrypt x in [0, B)^L under this slot's public key, blinded by its pad.

        Raises:
            DimensionMismatch: if x, mpk or otp length differs from L
            OutOfBound: if a coordinate of x is outside [0, B)
            EntropyFailure: if the random source fails
        """
        vector = self.scheme.check_plaintext(x)
        pad = as_vector(otp, self.params.vec_len, "otp")
        q = self.params.q
        ciphertext = self.scheme.encrypt_exponents(
            [(xi + ui) % q for xi, ui in zip(vector, pad)], mpk
        )
        multi_logger.debug(f"Client encrypted {len(vector)}-coordinate vector")
        return ciphertext


class DDHMulti:
    """
    Authority side of the multi-input scheme: key generation, key derivation
    and joint decryption for a fixed number of slots.
    """

    def __init__(self, slots: int, params: GroupParams, rng=None, validate: bool = True):
        """
        Args:
            slots: Number of encryptors N
            params: Group parameters; N * L * B^2 must fit below Q
            rng: Random source for keys and pads
            validate: Re-check the parameter invariants
        """
        if slots < 1:
            raise ParameterError(f"Number of slots must be at least 1, got {slots}")
        if validate:
            params.validate(capacity=slots)
        elif slots * params.max_inner_product >= params.q:
            raise ParameterError(
                f"N * L * B^2 = {slots * params.max_inner_product} does not fit below the group order"
            )

        self.slots = slots
        self.params = params
        self.rng = rng if rng is not None else default_rng()
        self.scheme = DDH(params, rng=self.rng, validate=False)

        self._solver: Optional[BabyStepGiantStep] = None
        self._solver_lock = threading.Lock()

        multi_logger.info(
            f"Multi-input DDH initialized: N={slots}, L={params.vec_len}, B={params.bound}"
        )

    @classmethod
    def new(cls, slots: int, vec_len: int, modulus_length: int, bound: int, rng=None) -> "DDHMulti":
        """Generate group parameters sized for `slots` encryptors."""
        if slots < 1:
            raise ParameterError(f"Number of slots must be at least 1, got {slots}")
        params = generate_group_params(vec_len, modulus_length, bound, capacity=slots, rng=rng)
        return cls(slots, params, rng=rng, validate=False)

    @property
    def search_range(self) -> int:
        """Exclusive upper end N * L * B^2 of the recovery range."""
        return self.slots * self.params.max_inner_product

    @property
    def solver(self) -> BabyStepGiantStep:
        if self._solver is None:
            with self._solver_lock:
                if self._solver is None:
                    self._solver = BabyStepGiantStep(
                        self.params.g, self.params.p, self.params.q, self.search_range
                    )
        return self._solver

    def client(self, rng=None) -> DDHMultiClient:
        """Encryptor bound to the same parameters, with its own random source."""
        return DDHMultiClient(self.params, rng=rng if rng is not None else default_rng())

    def generate_master_keys(self) -> Tuple[MultiMasterPublicKey, MultiMasterSecretKey]:
        """
        Independent key pair and pad vector in [0, Q)^L for every slot.

        Raises:
            EntropyFailure: if the random source fails
        """
        msks = []
        mpks = []
        pads = []
        for _ in range(self.slots):
            msk, mpk = self.scheme.generate_master_keys()
            msks.append(msk)
            mpks.append(mpk)
            pads.append(tuple(sample_uniform(self.rng, self.params.q)
                              for _ in range(self.params.vec_len)))

        multi_logger.info(f"Generated multi-input master keys for {self.slots} slots")
        return MultiMasterPublicKey(tuple(mpks)), MultiMasterSecretKey(tuple(msks), tuple(pads))

    def _check_matrix(self, y: Sequence[Sequence[int]]) -> Tuple[Tuple[int, ...], ...]:
        rows = list(y)
        if len(rows) != self.slots:
            multi_logger.warning(f"Rejected weight matrix with {len(rows)} rows, expected {self.slots}")
            raise DimensionMismatch(f"Weight matrix has {len(rows)} rows, expected {self.slots}")
        return tuple(as_vector(row, self.params.vec_len, f"Y[{i}]") for i, row in enumerate(rows))

    def derive_key(self, msk: MultiMasterSecretKey, y: Sequence[Sequence[int]]) -> MultiFunctionKey:
        """
        Function key for the N x L weight matrix y.

        Raises:
            DimensionMismatch: if y or msk does not have shape (N, L)
        """
        matrix = self._check_matrix(y)
        if len(msk) != self.slots or len(msk.otp) != self.slots:
            multi_logger.warning(f"Rejected secret key covering {len(msk)} slots, expected {self.slots}")
            raise DimensionMismatch(f"Secret key covers {len(msk)} slots, expected {self.slots}")

        q = self.params.q
        keys = tuple(self.scheme.derive_key(msk.msks[i], matrix[i]) for i in range(self.slots))
        pad_product = 0
        for pad, row in zip(msk.otp, matrix):
            pad_product += sum(u * w for u, w in zip(as_vector(pad, self.params.vec_len, "otp"), row))
        otp_key = (-pad_product) % q

        multi_logger.debug(f"Derived multi-input function key for {self.slots} slots")
        return MultiFunctionKey(keys=keys, otp_key=otp_key)

    def decrypt(self, ciphers: Sequence[Ciphertext], key: MultiFunctionKey,
                y: Sequence[Sequence[int]]) -> int:
        """
        Recover sum_i <x_i, y_i> from all N ciphertexts, given in slot order.

        Raises:
            IncompleteInput: if fewer than N ciphertexts are supplied
            DimensionMismatch: if there are more than N ciphertexts, or the
                key or y do not match (N, L)
            DecryptionFailed: if no value in [0, N * L * B^2) matches
        """
        ciphers = list(ciphers)
        if len(ciphers) < self.slots:
            multi_logger.warning(f"Decryption attempted with {len(ciphers)} of {self.slots} ciphertexts")
            raise IncompleteInput(f"Got {len(ciphers)} ciphertexts, expected {self.slots}")
        if len(ciphers) > self.slots:
            multi_logger.warning(f"Decryption attempted with {len(ciphers)} ciphertexts for {self.slots} slots")
            raise DimensionMismatch(f"Got {len(ciphers)} ciphertexts, expected {self.slots}")
        matrix = self._check_matrix(y)
        if len(key) != self.slots:
            multi_logger.warning(f"Rejected function key covering {len(key)} slots, expected {self.slots}")
            raise DimensionMismatch(f"Function key covers {len(key)} slots, expected {self.slots}")

        params = self.params
        target = pow(params.g, key.otp_key % params.q, params.p)
        for cipher, k, row in zip(ciphers, key.keys, matrix):
            target = (target * self.scheme.blinded_product(cipher, k, row)) % params.p

        try:
            result = self.solver.solve(target)
        except DiscreteLogNotFound as e:
            multi_logger.warning("Multi-input decryption failed: inner product outside the recovery range")
            raise DecryptionFailed(
                f"Inner product not recoverable within [0, {self.search_range})"
            ) from e

        multi_logger.debug("Multi-input decryption succeeded")
        return result

    def encrypt_all(self, xs: Sequence[Sequence[int]], mpk: MultiMasterPublicKey,
                    otp: Sequence[Sequence[int]], workers: Optional[int] = None) -> List[Ciphertext]:
        """
        Encrypt one vector per slot, each with an independent client.

        Slots run concurrently on a thread pool; results come back in slot
        order. The first failing slot's error is raised.

        Raises:
            IncompleteInput: if fewer than N vectors or pads are given
            DimensionMismatch: if more than N vectors or pads are given
        """
        xs = list(xs)
        pads = list(otp)
        for name, items in (("vectors", xs), ("pads", pads), ("public keys", list(mpk.mpks))):
            if len(items) < self.slots:
                multi_logger.warning(f"Encryption attempted with {len(items)} {name} for {self.slots} slots")
                raise IncompleteInput(f"Got {len(items)} {name}, expected {self.slots}")
            if len(items) > self.slots:
                multi_logger.warning(f"Encryption attempted with {len(items)} {name} for {self.slots} slots")
                raise DimensionMismatch(f"Got {len(items)} {name}, expected {self.slots}")

        clients = [self.client() for _ in range(self.slots)]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(clients[i].encrypt, xs[i], mpk[i], pads[i])
                for i in range(self.slots)
            ]
            return [f.result() for f in futures]


class EpochState(Enum):
    UNINITIALIZED = "uninitialized"
    KEYS_GENERATED = "keys_generated"
    ENCRYPTING = "encrypting"
    FUNCTION_KEY_DERIVED = "function_key_derived"
    DECRYPTED = "decrypted"


class MultiInputEpoch:
    """
    One authority and N encryptors for a single round of inner-product
    computation.

    Tracks which slots have submitted and refuses to decrypt until all of
    them have and a function key exists.
    """

    def __init__(self, scheme: DDHMulti):
        self.scheme = scheme
        self.state = EpochState.UNINITIALIZED
        self.mpk: Optional[MultiMasterPublicKey] = None
        self._msk: Optional[MultiMasterSecretKey] = None
        self.ciphertexts: Dict[int, Ciphertext] = {}
        self.function_key: Optional[MultiFunctionKey] = None
        self.weights: Optional[Tuple[Tuple[int, ...], ...]] = None
        self.result: Optional[int] = None
        self._lock = threading.Lock()

    def _require(self, *states: EpochState) -> None:
        if self.state not in states:
            multi_logger.warning(f"Epoch operation rejected in state {self.state.value}")
            raise EpochStateError(
                f"Operation not allowed in state {self.state.value}"
            )

    def setup(self) -> MultiMasterPublicKey:
        """Generate the epoch's key material."""
        with self._lock:
            self._require(EpochState.UNINITIALIZED)
            self.mpk, self._msk = self.scheme.generate_master_keys()
            self.state = EpochState.KEYS_GENERATED
        return self.mpk

    def client_material(self, slot: int) -> Tuple[MasterPublicKey, Tuple[int, ...]]:
        """Public key slice and pad the authority hands to encryptor `slot`."""
        self._require(EpochState.KEYS_GENERATED, EpochState.ENCRYPTING)
        self._check_slot(slot)
        return self.mpk[slot], self._msk.otp[slot]

    def _check_slot(self, slot: int) -> None:
        if not 0 <= slot < self.scheme.slots:
            multi_logger.warning(f"Rejected unknown slot {slot}")
            raise DimensionMismatch(f"Slot {slot} outside [0, {self.scheme.slots})")

    def submit(self, slot: int, ciphertext: Ciphertext) -> None:
        """Record the ciphertext of one encryptor; each slot submits once."""
        self._check_slot(slot)
        with self._lock:
            self._require(EpochState.KEYS_GENERATED, EpochState.ENCRYPTING)
            if slot in self.ciphertexts:
                raise EpochStateError(f"Slot {slot} already submitted a ciphertext")
            self.ciphertexts[slot] = ciphertext
            self._advance()
        multi_logger.info(f"Slot {slot} submitted ({len(self.ciphertexts)}/{self.scheme.slots})")

    def _advance(self) -> None:
        # FUNCTION_KEY_DERIVED needs both the key and every ciphertext.
        if self.function_key is not None and not self.missing_slots():
            self.state = EpochState.FUNCTION_KEY_DERIVED
        else:
            self.state = EpochState.ENCRYPTING

    def missing_slots(self) -> List[int]:
        return [i for i in range(self.scheme.slots) if i not in self.ciphertexts]

    def derive_key(self, y: Sequence[Sequence[int]]) -> MultiFunctionKey:
        """
        Derive the function key for y, once per epoch.

        May run before every slot has submitted.

        Raises:
            EpochStateError: before setup, or if a key was already derived
        """
        rows = [tuple(row) for row in y]
        with self._lock:
            self._require(EpochState.KEYS_GENERATED, EpochState.ENCRYPTING)
            if self.function_key is not None:
                raise EpochStateError("A function key was already derived for this epoch")
            self.function_key = self.scheme.derive_key(self._msk, rows)
            self.weights = tuple(rows)
            self._advance()
        return self.function_key

    def decrypt(self) -> int:
        """
        Recover the inner product once every slot has submitted.

        Raises:
            EpochStateError: before setup, after decryption, or if no
                function key was derived
            IncompleteInput: if some slots have not submitted
        """
        with self._lock:
            self._require(EpochState.KEYS_GENERATED, EpochState.ENCRYPTING,
                          EpochState.FUNCTION_KEY_DERIVED)
            missing = self.missing_slots()
            if missing:
                multi_logger.warning(f"Epoch decryption attempted with slots {missing} missing")
                raise IncompleteInput(f"Slots {missing} have not submitted a ciphertext")
            if self.function_key is None:
                raise EpochStateError("No function key has been derived")
            ciphers = [self.ciphertexts[i] for i in range(self.scheme.slots)]
            self.result = self.scheme.decrypt(ciphers, self.function_key, self.weights)
            self.state = EpochState.DECRYPTED
        return self.result
