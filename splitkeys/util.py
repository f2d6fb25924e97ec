import logging
import re

from secrets import SystemRandom

from py_ecc.optimized_bls12_381 import curve_order
from py_ecc.bls.g2_primitives import G1_to_pubkey, pubkey_to_G1

random = SystemRandom()


########################
# Validation utilities #
########################


def validate_private_value(value: int):
    if value < 0 or value >= curve_order:
        raise ValueError('invalid BLS private value')


def validate_identity(identity: int):
    if isinstance(identity, bool) or not isinstance(identity, int):
        raise ValueError('identity must be an integer, got {!r}'.format(identity))
    if identity <= 0 or identity >= curve_order:
        raise ValueError('invalid member identity {}'.format(identity))


def validate_identities(identities: tuple):
    for identity in identities:
        validate_identity(identity)

    if len(set(identities)) != len(identities):
        raise ValueError('member identities must be pairwise distinct')


########################
# Conversion utilities #
########################


def private_value_to_bytes(value: int) -> bytes:
    validate_private_value(value)
    return value.to_bytes(32, byteorder='big')


def bytes_to_private_value(bts: bytes) -> int:
    if len(bts) != 32:
        raise ValueError('unexpected length {} bytes'.format(len(bts)))
    priv = int.from_bytes(bts, byteorder='big')
    validate_private_value(priv)
    return priv


def curve_point_to_bytes(point) -> bytes:
    return bytes(G1_to_pubkey(point))


def bytes_to_curve_point(bts: bytes):
    if len(bts) != 48:
        raise ValueError('unexpected length {} bytes'.format(len(bts)))
    return pubkey_to_G1(bts)


def curve_point_to_hex(point) -> str:
    return curve_point_to_bytes(point).hex()


def hex_to_curve_point(value: str):
    if value.startswith('0x'):
        value = value[2:]
    try:
        bts = bytes.fromhex(value)
    except ValueError:
        raise ValueError('invalid hex encoded public key {!r}'.format(value))
    return bytes_to_curve_point(bts)


def shares_to_bytes(shares: dict) -> dict:
    return {identity: private_value_to_bytes(value) for identity, value in shares.items()}


def bytes_to_shares(serialized: dict) -> dict:
    shares = {}
    for identity, bts in serialized.items():
        validate_identity(identity)
        shares[identity] = bytes_to_private_value(bts)
    return shares


###########################
# Configuration utilities #
###########################

PRIVATE_VALUE_RE = re.compile(r'(?P<optprefix>0x)?(?P<value>[0-9A-Fa-f]{64})')
IDENTITY_RE = re.compile(r'(?P<value>\d+)')


def get_or_generate_private_value(filepath: str) -> int:
    try:
        with open(filepath) as private_key_fp:
            private_key_str = private_key_fp.read().strip()
    except FileNotFoundError:
        private_key_str = ''

    private_key_match = PRIVATE_VALUE_RE.fullmatch(private_key_str)
    if private_key_match:
        private_key = int(private_key_match.group('value'), 16)
        if private_key != 0:
            validate_private_value(private_key)
            return private_key

    logging.warning('could not read key from private key file {}; generating new value...'.format(filepath))
    with open(filepath, 'w') as private_key_fp:
        private_key = random_private_value()
        private_key_fp.write('{:064x}\n'.format(private_key))
        return private_key


def get_identities(filepath: str) -> tuple:
    with open(filepath, 'r') as f:
        identities = tuple(
            int(m.group('value'))
            for m in filter(
                lambda v: v is not None,
                (IDENTITY_RE.fullmatch(l.strip()) for l in f if not l.startswith('#'))
            )
        )

    validate_identities(identities)
    return identities


###################
# Other utilities #
###################


def random_private_value(rng=None) -> int:
    if rng is None:
        rng = random
    return rng.randrange(1, curve_order)
