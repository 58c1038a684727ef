#!/usr/bin/env python3
"""
Command-line front end for the DDH inner-product schemes.

    python fe_cli.py single --x 5,2,9 --y 1,0,4
    python fe_cli.py multi --x 3,1 --x 2,4 --y 1,1 --y 1,1

Generates fresh parameters and keys, encrypts, derives the function key,
decrypts and checks the result against the plaintext inner product.
"""

import argparse
import sys
from typing import List, Optional, Sequence, Tuple

from ddh_fe import Ciphertext, DDHWrapper
from ddh_multi import DDHMulti, MultiFunctionKey
from fe_config import FEConfig, configure_logger
from fe_errors import FunctionalEncryptionError

cli_logger = configure_logger("fe_cli")


def parse_vector(text: str, bound: Optional[int] = None) -> Tuple[int, ...]:
    """
    Parse comma-separated non-negative integers, e.g. "5,128,1".

    Raises:
        ValueError: on empty input, malformed tokens or values >= bound
    """
    if text is None or text.strip() == "":
        raise ValueError("Vector must not be empty")
    values = []
    for token in text.split(","):
        token = token.strip()
        if not (token.isascii() and token.isdigit()):
            raise ValueError(f"Invalid vector entry {token!r}: expected a non-negative integer")
        value = int(token, 10)
        if bound is not None and value >= bound:
            raise ValueError(f"Vector entry {value} is not below the bound {bound}")
        values.append(value)
    return tuple(values)


def inner_product(x: Sequence[int], y: Sequence[int]) -> int:
    return sum(a * b for a, b in zip(x, y))


def render_vector(values: Sequence[int]) -> str:
    return "[" + " ".join(str(v) for v in values) + "]"


def render_ciphertext(ciphertext: Ciphertext) -> str:
    return render_vector((ciphertext.c0,) + ciphertext.cs)


def render_check(expected: int, actual: int) -> str:
    if expected == actual:
        return "Inner product check OK"
    return f"Inner product check failed: {expected} != {actual}"


def run_single(x: Sequence[int], y: Sequence[int], config: FEConfig) -> bool:
    if len(x) != len(y):
        raise ValueError("Vectors should be of the same length")

    wrapper = DDHWrapper.new(len(x), config.modulus_length, config.bound)
    print("------------------------")
    print("DDHWrapper created successfully.")
    print(wrapper.params_summary(), end="")
    msk, mpk = wrapper.export_keys()
    print(f"Master secret key: {msk}\nMaster public key: {mpk}")
    print("------------------------")

    ciphertext = wrapper.encrypt(x)
    print(f"Encrypted vector: {render_ciphertext(ciphertext)}")

    key = wrapper.derive_key(y)
    print(f"Functional encryption key: {key}")

    result = wrapper.decrypt(ciphertext, key, y)
    print(f"Decrypted inner product: {result}")

    expected = inner_product(x, y)
    print(render_check(expected, result))
    return expected == result


def run_multi(xs: List[Tuple[int, ...]], ys: List[Tuple[int, ...]], config: FEConfig) -> bool:
    if len(xs) != len(ys):
        raise ValueError("Give one weight row per input vector")
    lengths = {len(v) for v in xs + ys}
    if len(lengths) != 1:
        raise ValueError("All vectors should be of the same length")

    scheme = DDHMulti.new(len(xs), lengths.pop(), config.modulus_length, config.bound)
    mpk, msk = scheme.generate_master_keys()
    print("------------------------")
    print(f"DDHMulti created successfully with {scheme.slots} encryptors.")
    params = scheme.params
    print(f"\tL: {params.vec_len}\n\tG: {params.g}\n\tP: {params.p}\n\tQ: {params.q}\n\tBound: {params.bound}")
    print("------------------------")

    ciphers = scheme.encrypt_all(xs, mpk, msk.otp)
    for i, ciphertext in enumerate(ciphers):
        print(f"Encrypted vector {i}: {render_ciphertext(ciphertext)}")

    key: MultiFunctionKey = scheme.derive_key(msk, ys)
    print(f"Functional encryption key: {render_vector(key.keys)} otp={key.otp_key}")

    result = scheme.decrypt(ciphers, key, ys)
    print(f"Decrypted inner product: {result}")

    expected = sum(inner_product(x, y) for x, y in zip(xs, ys))
    print(render_check(expected, result))
    return expected == result


def build_parser(config: FEConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='DDH inner-product functional encryption demo')
    parser.add_argument('--modulus-length', type=int, default=config.modulus_length,
                        help='Bit length of the group modulus')
    parser.add_argument('--bound', type=int, default=config.bound,
                        help='Exclusive upper bound on every input coordinate')
    sub = parser.add_subparsers(dest='mode', required=True)

    single = sub.add_parser('single', help='Single-input scheme')
    single.add_argument('--x', required=True, help='Input vector, e.g. 5,2,9')
    single.add_argument('--y', required=True, help='Weight vector, e.g. 1,0,4')

    multi = sub.add_parser('multi', help='Multi-input scheme, one --x/--y pair per encryptor')
    multi.add_argument('--x', required=True, action='append', help='Input vector of one encryptor')
    multi.add_argument('--y', required=True, action='append', help='Weight row of one encryptor')
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = FEConfig.from_env()
    args = build_parser(config).parse_args(argv)
    config = FEConfig(
        modulus_length=args.modulus_length,
        bound=args.bound,
        log_dir=config.log_dir,
        log_level=config.log_level,
        max_prime_attempts=config.max_prime_attempts,
    )

    try:
        if args.mode == 'single':
            ok = run_single(parse_vector(args.x, config.bound), parse_vector(args.y), config)
        else:
            xs = [parse_vector(x, config.bound) for x in args.x]
            ys = [parse_vector(y) for y in args.y]
            ok = run_multi(xs, ys, config)
    except (FunctionalEncryptionError, ValueError) as e:
        cli_logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
