import functools
import logging

from py_ecc.optimized_bls12_381 import G1, Z1, add, curve_order, multiply

from . import util
from .exceptions import InsufficientShares, InvalidParameters, SingularInterpolation


def random_polynomial(constant: int, order: int, rng=None) -> tuple:
    if rng is None:
        rng = util.random
    return (constant,) + tuple(rng.randrange(curve_order) for _ in range(order - 1))


def eval_polynomial(poly: tuple, x: int) -> int:
    return sum(c * pow(x, k, curve_order) for k, c in enumerate(poly)) % curve_order


def split(secret: int, threshold: int, count: int, identities: tuple = None, rng=None) -> dict:
    """Split ``secret`` into ``count`` Shamir shares, any ``threshold`` of which recover it.

    Shares are returned as a mapping from member identity (the x-coordinate the
    polynomial was evaluated at) to share value. Identities default to 1..count.
    """
    if threshold < 1:
        raise InvalidParameters('threshold must be at least 1 (got {})'.format(threshold))
    if count < threshold:
        raise InvalidParameters('cannot split into {} shares with threshold {}'.format(count, threshold))

    try:
        util.validate_private_value(secret)
    except ValueError:
        raise InvalidParameters('secret is not an element of the scalar field')

    if identities is None:
        identities = tuple(range(1, count + 1))
    else:
        identities = tuple(identities)
        if len(identities) != count:
            raise InvalidParameters('expected {} identities but got {}'.format(count, len(identities)))
        try:
            util.validate_identities(identities)
        except ValueError as e:
            raise InvalidParameters(str(e))

    poly = random_polynomial(secret, threshold, rng)
    shares = {identity: eval_polynomial(poly, identity) for identity in identities}

    logging.debug('split secret into {} shares with threshold {}'.format(count, threshold))
    return shares


##################
# Reconstruction #
##################


def _share_items(shares) -> tuple:
    if isinstance(shares, dict):
        items = tuple(shares.items())
    else:
        items = tuple(shares)

    for _, value in items:
        util.validate_private_value(value)

    return items


def lagrange_coefficients(identities: tuple) -> dict:
    """Lagrange basis polynomials for ``identities`` evaluated at x = 0."""
    identities = tuple(identities)

    if len(set(identities)) != len(identities):
        raise SingularInterpolation('share identities must be pairwise distinct')

    if any(identity % curve_order == 0 for identity in identities):
        raise SingularInterpolation('share identity 0 is reserved for the secret')

    coefficients = {}
    for i in identities:
        numerator, denominator = 1, 1
        for j in identities:
            if j == i:
                continue
            diff = (j - i) % curve_order
            if diff == 0:
                raise SingularInterpolation('identities {} and {} coincide in the scalar field'.format(i, j))
            numerator = numerator * j % curve_order
            denominator = denominator * diff % curve_order
        coefficients[i] = numerator * pow(denominator, curve_order - 2, curve_order) % curve_order

    return coefficients


def derive_public_shares(shares) -> dict:
    return {identity: multiply(G1, value) for identity, value in _share_items(shares)}


def reconstruct_public_key(shares, threshold: int):
    """Interpolate the aggregate public key from at least ``threshold`` shares.

    ``shares`` is a mapping of identity to share value or an iterable of
    (identity, value) pairs. Any qualifying subset of the same split yields the
    same point.
    """
    if threshold < 1:
        raise InvalidParameters('threshold must be at least 1 (got {})'.format(threshold))

    items = _share_items(shares)
    if len(items) < threshold:
        raise InsufficientShares(len(items), threshold)

    coefficients = lagrange_coefficients(identity for identity, _ in items)
    public_shares = derive_public_shares(items)

    return functools.reduce(
        add,
        (multiply(public_shares[identity], coefficients[identity]) for identity, _ in items),
        Z1
    )


def reconstruct_secret(shares, threshold: int) -> int:
    if threshold < 1:
        raise InvalidParameters('threshold must be at least 1 (got {})'.format(threshold))

    items = _share_items(shares)
    if len(items) < threshold:
        raise InsufficientShares(len(items), threshold)

    coefficients = lagrange_coefficients(identity for identity, _ in items)
    return sum(value * coefficients[identity] for identity, value in items) % curve_order


####################
# Subset selection #
####################


def select_first(available: dict, threshold: int) -> dict:
    return {identity: available[identity] for identity in sorted(available)[:threshold]}


def select_all(available: dict, threshold: int) -> dict:
    return dict(available)


def random_selection(rng=None):
    if rng is None:
        rng = util.random

    def select_random(available: dict, threshold: int) -> dict:
        chosen = rng.sample(sorted(available), min(threshold, len(available)))
        return {identity: available[identity] for identity in chosen}

    return select_random


SELECTION_POLICIES = {
    'first': lambda rng: select_first,
    'all': lambda rng: select_all,
    'random': random_selection,
}
